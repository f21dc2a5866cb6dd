"""
Auth session
============

An explicit, injectable session object: created empty, established by a
successful login / 2FA verification (or restored from the token store),
destroyed on logout or when the stored token no longer resolves to a
user.  ``ApiClient`` reads the bearer token through ``current_token``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from ridehail.api.auth import AuthApi
from ridehail.api.schemas import LoginResponse, UserResponse
from ridehail.domain.entities import User
from ridehail.domain.errors import RideHailError, ValidationError
from ridehail.infrastructure.token_store import TOKEN_KEY, USER_KEY, TokenStore

logger = logging.getLogger(__name__)


class AuthSession:
    def __init__(self, store: TokenStore, token_key: str = TOKEN_KEY):
        self.store = store
        self.token_key = token_key
        self.auth: Optional[AuthApi] = None
        self.user: Optional[User] = None
        self.token: Optional[str] = None
        self.pending_two_factor_email: Optional[str] = None

    def bind(self, auth: AuthApi) -> None:
        """Attach the auth API (the API client itself depends on this session)."""
        self.auth = auth

    def _api(self) -> AuthApi:
        if self.auth is None:
            raise RuntimeError("AuthSession is not bound to an AuthApi")
        return self.auth

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and self.token is not None

    @property
    def needs_two_factor(self) -> bool:
        return self.pending_two_factor_email is not None

    def current_token(self) -> Optional[str]:
        return self.token

    # ── Lifecycle ─────────────────────────────────────────────────

    async def restore(self) -> Optional[User]:
        """Re-establish the session from a persisted token, if any."""
        token = await self.store.get(self.token_key)
        if not token:
            return None
        self.token = token
        try:
            profile = await self._api().me()
        except RideHailError:
            logger.exception("Stored token rejected; clearing session")
            await self._destroy()
            return None
        self.user = profile.to_user()
        return self.user

    async def login(self, email: str, password: str) -> Optional[User]:
        """Returns the user, or ``None`` when a 2FA code is required next."""
        if not email or not password:
            raise ValidationError("Email and password are required", ("email", "password"))
        response = await self._api().login(email, password)
        if response.requires_two_factor:
            self.pending_two_factor_email = email
            logger.info("Two-factor verification required for %s", email)
            return None
        return await self._establish(response)

    async def verify_two_factor(self, code: str) -> User:
        if not self.pending_two_factor_email:
            raise ValidationError("No two-factor verification is pending")
        if not code:
            raise ValidationError("Verification code is required", ("code",))
        response = await self._api().verify_two_factor(
            self.pending_two_factor_email, code
        )
        self.pending_two_factor_email = None
        return await self._establish(response)

    async def register(self, user_data: dict[str, Any]) -> dict[str, Any]:
        return await self._api().register(user_data)

    async def forgot_password(self, email: str) -> dict[str, Any]:
        if not email:
            raise ValidationError("Email is required", ("email",))
        return await self._api().forgot_password(email)

    async def reset_password(self, token: str, new_password: str) -> dict[str, Any]:
        if not token or not new_password:
            raise ValidationError(
                "Reset token and new password are required", ("token", "new_password")
            )
        return await self._api().reset_password(token, new_password)

    async def logout(self) -> None:
        await self._destroy()
        logger.info("Logged out")

    # ── Internals ─────────────────────────────────────────────────

    async def _establish(self, response: LoginResponse) -> User:
        user_response: UserResponse = response.user  # validated by AuthApi
        self.user = user_response.to_user()
        self.token = response.token
        if self.token:
            await self.store.set(self.token_key, self.token)
        await self.store.set(USER_KEY, user_response.model_dump_json(by_alias=True))
        logger.info("Session established for %s (%s)", self.user.email, self.user.role.value)
        return self.user

    async def _destroy(self) -> None:
        self.user = None
        self.token = None
        self.pending_two_factor_email = None
        await self.store.delete(self.token_key)
        await self.store.delete(USER_KEY)

    async def cached_user(self) -> Optional[dict[str, Any]]:
        raw = await self.store.get(USER_KEY)
        return json.loads(raw) if raw else None
