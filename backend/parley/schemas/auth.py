"""Auth Schemas — OTP request/verification contracts."""

from pydantic import BaseModel, Field


class AuthenticateRequest(BaseModel):
    email: str = Field(max_length=320)


class AuthenticateResponse(BaseModel):
    confirmation: str


class TokenRequest(BaseModel):
    email: str = Field(max_length=320)
    code: str = Field(max_length=16)


class TokenResponse(BaseModel):
    bearer_token: str
    has_profile: bool
