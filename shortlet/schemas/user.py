# shortlet/schemas/user.py
from typing import Literal, Optional
from pydantic import BaseModel, EmailStr, Field


class UserBase(BaseModel):
    id: int
    name: str
    email: EmailStr
    phone: Optional[str] = None
    role: str
    is_active: bool

    # Pydantic v2 style (replaces orm_mode = True)
    model_config = {"from_attributes": True}


class UserCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8)
    phone: Optional[str] = None
    # self-service signup may pick guest or agent; admins are appointed
    role: Literal["user", "agent"] = "user"


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserRoleUpdate(BaseModel):
    """
    body: { "role": "user" | "agent" | "admin" }
    """
    role: Literal["user", "agent", "admin"]


class UserOut(UserBase):
    """
    Public-facing user data (e.g. auth token payload).
    """
    pass


class PublicAgent(BaseModel):
    """
    Owner as shown on a listing: no phone, role or credentials.
    """
    id: int
    name: str
    email: EmailStr

    model_config = {"from_attributes": True}


class UsersPage(BaseModel):
    items: list[UserBase]
    total: int
    page: int
    per_page: int
