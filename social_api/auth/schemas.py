import re
from pydantic import BaseModel, SecretStr, field_validator
from typing import Optional


"""
auth/signup
"""


class UserSignupModel(BaseModel):
    email: str
    username: str
    password: SecretStr

    @field_validator("email")
    @classmethod
    def validate_email(cls, email: str) -> str:
        email = email.strip()
        if not re.match(r"^[^@\s]+@[^@\s]+\.[^@\s]+$", email):
            raise ValueError("A valid email address is required.")
        return email

    @field_validator("username")
    @classmethod
    def validate_username(cls, username: str) -> str:
        username = username.strip()

        # Length check (min 3, max 20)
        if not (3 <= len(username) <= 20):
            raise ValueError(
                f"Username must be between 3 and 20 characters long (got {len(username)})."
            )

        # Allow only characters (letters, numbers, underscores, and dots)
        if not re.match(r"^[a-zA-Z0-9_.]+$", username):
            raise ValueError(
                "Username must only contain letters, numbers, underscores, and dots."
            )

        return username

    @field_validator("password")
    @classmethod
    def validate_password(cls, password: SecretStr) -> SecretStr:
        # Minimum length of 8 characters (no maximum)
        if len(password.get_secret_value()) < 8:
            raise ValueError("Password must be at least 8 characters long.")

        return password


class PublicUser(BaseModel):
    id: str
    email: Optional[str] = None
    username: str
    profile_pic_url: Optional[str] = None


class UserSignupResponseModel(BaseModel):
    user: PublicUser


"""
auth/login
"""


class UserLoginModel(BaseModel):
    email: str
    password: SecretStr


class UserLoginResponseModel(BaseModel):
    user: PublicUser
    token: str
    refreshToken: str


"""
auth/user
"""


class MeResponseModel(BaseModel):
    id: str
    username: str
    profile_pic_url: Optional[str] = None


"""
auth/refresh
"""


class RefreshUser(BaseModel):
    id: str
    email: Optional[str] = None


class RefreshResponseModel(BaseModel):
    message: str
    user: Optional[RefreshUser] = None


class LogoutResponseModel(BaseModel):
    logged_out: bool
