"""User schemas"""

from pydantic import BaseModel, EmailStr, Field


class UserSync(BaseModel):
    """Profile pushed by a first-party application before an SSO hand-off"""

    email: EmailStr
    first_name: str | None = Field(None, max_length=255)
    last_name: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=32)
    roles: list[str] = Field(default_factory=lambda: ["user"])
    is_active: bool = True


class UserProfile(BaseModel):
    """Profile returned to the application redeeming an SSO token"""

    id: str
    email: str
    first_name: str
    last_name: str
    phone: str | None = None
    roles: list[str]

    model_config = {"from_attributes": True}

    @classmethod
    def from_user(cls, user) -> "UserProfile":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            phone=user.phone,
            roles=user.role_list,
        )
