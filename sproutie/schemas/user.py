from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

_camel = {"alias_generator": to_camel, "populate_by_name": True}


class UserCreate(BaseModel):
    firebase_uid: str = Field(min_length=1)
    email: EmailStr
    display_name: Optional[str] = None
    email_verified: bool = False

    model_config = _camel

    @field_validator("firebase_uid", mode="before")
    @classmethod
    def _strip_uid(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class UserUpdate(BaseModel):
    # Email verification comes from the ID token, never from the client
    display_name: Optional[str] = None

    model_config = _camel


class UserRead(BaseModel):
    id: int
    firebase_uid: str
    email: str
    display_name: Optional[str]
    email_verified: bool
    created_at: datetime

    model_config = {**_camel, "from_attributes": True}


class UserResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    user: UserRead
