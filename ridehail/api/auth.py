"""
Auth endpoints
==============

POST /api/auth/login            -- email + password -> token, user | 2FA required
POST /api/auth/2fa/verify       -- email + code -> token, user
POST /api/auth/register         -- create an account
POST /api/auth/forgot-password  -- send a reset link
POST /api/auth/reset-password   -- set a new password from a reset token
GET  /api/auth/me               -- profile for the bearer token
"""

from __future__ import annotations

from typing import Any

from ridehail.api.schemas import LoginPayload, LoginResponse, UserResponse, parse
from ridehail.domain.errors import AuthenticationError
from ridehail.infrastructure.http import ApiClient

PREFIX = "/api/auth"


class AuthApi:
    def __init__(self, client: ApiClient):
        self.client = client

    async def login(self, email: str, password: str) -> LoginResponse:
        data = await self.client.post(
            f"{PREFIX}/login",
            json=LoginPayload(email=email, password=password).model_dump(),
        )
        response = parse(LoginResponse, data or {})
        if not response.requires_two_factor and response.user is None:
            raise AuthenticationError("User data or role missing from server response")
        return response

    async def verify_two_factor(self, email: str, code: str) -> LoginResponse:
        data = await self.client.post(
            f"{PREFIX}/2fa/verify", json={"email": email, "code": code}
        )
        response = parse(LoginResponse, data or {})
        if response.user is None or not response.token:
            raise AuthenticationError("Verification response is missing the session")
        return response

    async def register(self, user_data: dict[str, Any]) -> dict[str, Any]:
        return await self.client.post(f"{PREFIX}/register", json=user_data) or {}

    async def me(self) -> UserResponse:
        return parse(UserResponse, await self.client.get(f"{PREFIX}/me"))

    async def forgot_password(self, email: str) -> dict[str, Any]:
        return (
            await self.client.post(f"{PREFIX}/forgot-password", json={"email": email})
            or {}
        )

    async def reset_password(self, token: str, new_password: str) -> dict[str, Any]:
        return (
            await self.client.post(
                f"{PREFIX}/reset-password",
                json={"token": token, "newPassword": new_password},
            )
            or {}
        )
