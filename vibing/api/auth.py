"""
Auth endpoints: /auth/*
"""

from vibing.api.client import ApiClient
from vibing.models.api import (
    AuthResponse,
    LoginCredentials,
    SignupData,
    TokenResponse,
    User,
    VerificationCodeResponse,
)


class AuthApi:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    async def login(self, credentials: LoginCredentials) -> AuthResponse:
        body = await self.client.request(
            "POST", "/auth/login", json=credentials.to_payload(), authenticated=False
        )
        return AuthResponse.model_validate(body)

    async def signup(self, data: SignupData) -> AuthResponse:
        body = await self.client.request(
            "POST", "/auth/signup", json=data.to_payload(), authenticated=False
        )
        return AuthResponse.model_validate(body)

    async def logout(self) -> None:
        await self.client.post("/auth/logout")

    async def refresh_token(self, refresh_token: str) -> TokenResponse:
        body = await self.client.request(
            "POST",
            "/auth/refresh",
            json={"refreshToken": refresh_token},
            authenticated=False,
        )
        return TokenResponse.model_validate(body)

    async def get_current_user(self) -> User:
        body = await self.client.get("/auth/me")
        return User.model_validate(body["user"])

    async def update_profile(self, changes: dict) -> User:
        body = await self.client.put("/auth/profile", changes)
        return User.model_validate(body.get("user", body))

    async def send_verification_code(self, phone: str) -> VerificationCodeResponse:
        body = await self.client.post("/auth/send-verification-code", {"phone": phone})
        return VerificationCodeResponse.model_validate(body or {})

    async def verify_phone(self, phone: str, code: str) -> str:
        body = await self.client.post("/auth/verify-phone", {"phone": phone, "code": code})
        return (body or {}).get("message", "")
