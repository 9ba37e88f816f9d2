from pydantic import BaseModel

from yaymon.schemas.user_schema import UserResponse


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse
