from pydantic import BaseModel, EmailStr, Field, field_validator
from tasktracker.utils.sanitization import sanitize_string


class UserBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr

    @field_validator("name", mode="before")
    @classmethod
    def sanitize(cls, v):
        return sanitize_string(v)


class UserCreate(UserBase):
    pass


class UserResponse(UserBase):
    id: int

    class Config:
        from_attributes = True
