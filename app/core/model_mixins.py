"""
Model mixins providing reusable functionality for Django models.

Available Mixins:
    SoftDeleteMixin: Soft delete support (is_deleted, deleted_at)

Usage:
    from core.models import BaseModel
    from core.model_mixins import SoftDeleteMixin

    class Message(SoftDeleteMixin, BaseModel):
        content = models.TextField()

        def on_soft_delete(self):
            self.content = ""

Note:
    - Always list mixins before BaseModel in inheritance
    - Mixins are abstract and don't create database tables
    - Soft-deleted rows stay visible to the default manager. Callers that
      must hide them filter on is_deleted explicitly.
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone


class SoftDeleteMixin(models.Model):
    """
    Soft delete support for models.

    Instead of permanently deleting records, marks them as deleted.
    The row keeps its primary key so that other rows can go on
    referencing it.

    Fields:
        is_deleted: Boolean flag indicating soft delete status
        deleted_at: Timestamp when the record was soft deleted

    Hooks:
        on_soft_delete(): called before the row is saved as deleted; extra
            fields it modifies must be listed in soft_delete_update_fields
        on_restore(): called before the row is saved as restored
    """

    soft_delete_update_fields: tuple[str, ...] = ()

    is_deleted = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether this record has been soft deleted",
    )
    deleted_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Timestamp when this record was soft deleted",
    )

    class Meta:
        abstract = True

    def soft_delete(self) -> None:
        """
        Mark this record as deleted.

        Idempotent: a record that is already deleted keeps its original
        deleted_at.
        """
        if self.is_deleted:
            return
        self.is_deleted = True
        self.deleted_at = timezone.now()
        self.on_soft_delete()
        self.save(
            update_fields=[
                "is_deleted",
                "deleted_at",
                "updated_at",
                *self.soft_delete_update_fields,
            ]
        )

    def restore(self) -> None:
        """Restore a soft-deleted record."""
        if not self.is_deleted:
            return
        self.is_deleted = False
        self.deleted_at = None
        self.on_restore()
        self.save(update_fields=["is_deleted", "deleted_at", "updated_at"])

    def on_soft_delete(self) -> None:
        pass

    def on_restore(self) -> None:
        pass
