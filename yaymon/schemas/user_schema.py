from typing import Optional

from pydantic import BaseModel

from yaymon.models import Role, User


class UserCreateRequest(BaseModel):
    name: str
    email: str
    password: str
    role: Role = Role.student


class UserUpdateRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[Role] = None
    # an empty password leaves the stored credential unchanged
    password: Optional[str] = None


class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    role: Role
    profile_photo_ref: Optional[str] = None

    @staticmethod
    def from_user(user: Optional[User]) -> Optional['UserResponse']:
        if user is None:
            return None
        return UserResponse.model_validate(user.model_dump())
