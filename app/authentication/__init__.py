"""
Authentication application.

Owns the user identity the realtime core keys everything on, and the
presence state persisted for it.

Key components:
    - User model: Email-based user with a numeric id and presence fields
    - PresenceService: Persists presence transitions decided by the
      realtime layer, plus explicit state changes from the profile endpoint
    - Token endpoints: simplejwt access/refresh tokens (bearer credential)

Usage:
    from authentication.models import User, PresenceState
    from authentication.services import PresenceService
"""
