from pydantic import BaseModel, EmailStr, Field
from typing import Optional, Literal
from datetime import datetime


class CreateUserProfileRequest(BaseModel):
    display_name: Optional[str] = Field(None, max_length=100)
    company_name: Optional[str] = Field(None, max_length=200)
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = Field(None, max_length=20)
    location: Optional[str] = Field(None, max_length=200)
    role: Optional[Literal["buyer", "supplier"]] = None


class UserResponse(BaseModel):
    id: str
    user_id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    company_name: Optional[str] = None
    phone_number: Optional[str] = None
    location: Optional[str] = None
    is_verified: bool = False
    role: str = "buyer"
    created_at: datetime
    updated_at: datetime
