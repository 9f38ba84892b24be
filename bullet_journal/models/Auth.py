from typing import Optional

from pydantic import BaseModel, EmailStr


class Credentials(BaseModel):
    email: EmailStr
    password: str


class ResetRequest(BaseModel):
    email: EmailStr
    redirectTo: Optional[str] = None


class PasswordUpdate(BaseModel):
    password: str


class Session(BaseModel):
    accessToken: str
    refreshToken: Optional[str] = None
    expiresIn: Optional[int] = None
    userId: str
    email: Optional[str] = None
