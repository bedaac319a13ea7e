"""
Root pytest configuration for the Django project.

This module configures pytest-django and provides project-wide fixtures.
App-specific fixtures are defined in each app's tests/conftest.py.

External services are replaced for the whole run:
    - Redis channel layer -> channels InMemoryChannelLayer (fresh per test)
    - Redis cache         -> LocMemCache
"""

import os

import django
import pytest

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

IN_MEMORY_CHANNEL_LAYERS = {
    "default": {"BACKEND": "channels.layers.InMemoryChannelLayer"},
}


def pytest_configure():
    """Configure Django settings before tests run."""
    django.setup()

    from django.conf import settings

    # Disable throttling during tests to prevent rate limit failures
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}

    # Use fast password hasher for tests
    settings.PASSWORD_HASHERS = [
        "django.contrib.auth.hashers.MD5PasswordHasher",
    ]

    settings.CACHES = {
        "default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"},
    }
    settings.CHANNEL_LAYERS = IN_MEMORY_CHANNEL_LAYERS


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py → e2e (full journeys across REST and websocket)
    - test_views.py, test_services.py, test_consumers.py, etc. → integration
    - test_models.py, test_events.py, test_registry.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    e2e_patterns = ["test_integration.py"]

    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_consumers.py",
        "test_fanout.py",
        "test_middleware.py",
        "test_reconciliation.py",
        "test_api.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_serializers.py",
        "test_events.py",
        "test_registry.py",
        "test_delivery.py",
        "test_state.py",
        "test_compose.py",
        "test_config.py",
    ]

    for item in items:
        # Skip if test already has unit/integration/e2e marker
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def in_memory_channel_layer(settings):
    """
    Give every test its own empty in-memory channel layer.

    Assigning CHANNEL_LAYERS through the settings fixture fires
    setting_changed, which makes channels drop its cached layer instance.
    """
    settings.CHANNEL_LAYERS = IN_MEMORY_CHANNEL_LAYERS
