from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    user_id: str
    email: str


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6, description="At least 6 characters")
    name: str = Field(min_length=2, max_length=100)


class RegisterResponse(BaseModel):
    user_id: str
    email: str
    message: str


class RefreshRequest(BaseModel):
    refresh_token: str


class MeResponse(BaseModel):
    id: str
    email: Optional[str] = None
    user_metadata: dict = {}
    roles: List[str]
    primary_role: str
    capabilities: List[str]
