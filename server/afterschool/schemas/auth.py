from typing import Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=150)
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class WhoAmIResponse(BaseModel):
    id: int
    username: str
    full_name: str
    role: str
    staff_sub_role: Optional[str] = None
    # None means unrestricted (admins and site managers).
    permissions: Optional[list[str]] = None
