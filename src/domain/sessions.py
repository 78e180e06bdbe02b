"""
Session domain service - Token-based operations after sign-in.

Covers the current-user lookup, refresh-token rotation and logout. These
never touch registration requests or verification codes.
"""

import logging
from dataclasses import dataclass

from .exceptions import ServerError, StorageError, Unauthorized
from .models import AuthenticatedUser, UserProfile
from .ports import ProfileStore, SessionIssuer

logger = logging.getLogger(__name__)


@dataclass
class SessionService:
    profiles: ProfileStore
    sessions: SessionIssuer

    def current_user(self, access_token: str) -> UserProfile:
        try:
            identity = self.sessions.resolve_access_token(access_token)
            if identity is None:
                raise Unauthorized()
            profile = self.profiles.get_profile(identity.id)
        except StorageError as e:
            logger.exception("Current user lookup failed")
            raise ServerError() from e

        if profile is None:
            # Identity left without a profile by a failed compensation
            logger.error("Identity %s has no profile", identity.id)
            raise ServerError()
        return profile

    def refresh(self, refresh_token: str) -> AuthenticatedUser:
        try:
            refreshed = self.sessions.refresh_session(refresh_token)
            if refreshed is None:
                raise Unauthorized()
            identity, session = refreshed
            profile = self.profiles.get_profile(identity.id)
        except StorageError as e:
            logger.exception("Session refresh failed")
            raise ServerError() from e

        return AuthenticatedUser(identity=identity, name=profile.name if profile else "", session=session)

    def logout(self, access_token: str) -> None:
        try:
            revoked = self.sessions.revoke_session(access_token)
        except StorageError as e:
            logger.exception("Session revocation failed")
            raise ServerError() from e
        if not revoked:
            raise Unauthorized()
