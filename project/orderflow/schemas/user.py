# orderflow/schemas/user.py

from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

from orderflow.models.user import Role

class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)

class UserBase(BaseModel):
    """
    Fields shared by input and output user schemas.
    """
    username: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    role: Optional[Role] = None

class UserCreate(UserBase):
    """
    New user, admin only. Username, name, role and password are required.
    """
    username: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=100)
    role: Role
    password: str = Field(..., min_length=1)

class UserUpdate(UserBase):
    """
    Partial update: only the fields sent are changed.
    """
    model_config = ConfigDict(extra="forbid")

    password: Optional[str] = Field(None, min_length=1)

class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=1)

class UserResponse(BaseModel):
    """
    User as returned by the API, never with the password hash.
    """
    id: int
    username: str
    name: str
    role: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class LoginResponse(BaseModel):
    user: UserResponse
    token: str
    token_type: str = "bearer"
