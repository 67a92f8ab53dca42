from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, EmailStr


def _validate_password_length(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters")
    if len(value.encode("utf-8")) > 72:
        raise ValueError("Password too long (max 72 bytes)")
    return value


Password = Annotated[str, AfterValidator(_validate_password_length)]


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RegisterRequest(BaseModel):
    email: EmailStr
    full_name: str
    password: Password
    phone: Optional[str] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RefreshRequest(BaseModel):
    refresh_token: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: Password


class UpdateMeRequest(BaseModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None


class Message(BaseModel):
    message: str
