from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from yaymon.configs import settings
from yaymon.errors import InvalidCredentials
from yaymon.schemas.user_schema import UserResponse

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 30
REFRESH_TOKEN_EXPIRE_DAYS = 30

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def verify_password(plain_password, hashed_password):
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def _claims(user: UserResponse) -> Dict:
    return {
        "sub": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role.value,
    }


def create_access_token(user: UserResponse, expires_delta: Optional[timedelta] = None,
                        secret: Optional[str] = None) -> str:
    to_encode = _claims(user)
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, secret or settings.JWT_ACCESS_SECRET, algorithm=ALGORITHM)


def create_refresh_token(user: UserResponse, secret: Optional[str] = None) -> str:
    to_encode = _claims(user)
    to_encode["exp"] = datetime.now(timezone.utc) + timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS)
    return jwt.encode(to_encode, secret or settings.JWT_REFRESH_SECRET, algorithm=ALGORITHM)


def decode_token(token: str, secret: Optional[str] = None) -> UserResponse:
    try:
        payload = jwt.decode(token, secret or settings.JWT_ACCESS_SECRET, algorithms=[ALGORITHM])
    except JWTError as e:
        raise InvalidCredentials("Could not validate credentials") from e
    return UserResponse.model_validate({
        "id": payload.get("sub"),
        "email": payload.get("email"),
        "name": payload.get("name"),
        "role": payload.get("role"),
    })


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_current_user(token: str = Depends(oauth2_scheme)) -> UserResponse:
    return decode_token(token)


def verify_refresh_token(token: str) -> UserResponse:
    return decode_token(token, settings.JWT_REFRESH_SECRET)
