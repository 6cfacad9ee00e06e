"""
services/auth.py -- /auth/* endpoints.

login and register return {user, token} in data on success.
"""

from __future__ import annotations

from api.models import ForgotPasswordData, LoginData, RegisterData, ResetPasswordData
from core.models import Envelope
from services.base import ResourceService


class AuthService(ResourceService):
    async def login(self, email: str, password: str) -> Envelope:
        return await self._post("/auth/login", LoginData(email=email, password=password))

    async def register(self, name: str, email: str, password: str) -> Envelope:
        return await self._post("/auth/register", RegisterData(name=name, email=email, password=password))

    async def me(self) -> Envelope:
        return await self._get("/auth/me")

    async def logout(self) -> Envelope:
        return await self._post("/auth/logout")

    async def refresh_token(self) -> Envelope:
        return await self._post("/auth/refresh-token")

    async def forgot_password(self, email: str) -> Envelope:
        return await self._post("/auth/forgot-password", ForgotPasswordData(email=email))

    async def reset_password(self, token: str, password: str) -> Envelope:
        return await self._post("/auth/reset-password", ResetPasswordData(token=token, password=password))
