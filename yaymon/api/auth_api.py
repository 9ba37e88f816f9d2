from fastapi import APIRouter, Body, Depends

from yaymon.api.deps import get_repositories
from yaymon.auth.auth_handler import (
    create_access_token,
    create_refresh_token,
    get_current_user,
    verify_refresh_token,
)
from yaymon.errors import InvalidCredentials
from yaymon.repositories import Repositories
from yaymon.schemas import Token, UserResponse

router = APIRouter(prefix="/auth", tags=["Auth"])


def _token(user: UserResponse, refresh_token: str = None) -> Token:
    return Token(
        access_token=create_access_token(user),
        refresh_token=refresh_token or create_refresh_token(user),
        user=user,
    )


@router.post("/login", response_model=Token)
async def login(email: str = Body(...), password: str = Body(...),
                repos: Repositories = Depends(get_repositories)):
    user = await repos.identity.verify_credentials(email, password)
    return _token(user)


@router.post("/register", response_model=Token)
async def register(name: str = Body(...), email: str = Body(...), password: str = Body(...),
                   repos: Repositories = Depends(get_repositories)):
    user = await repos.identity.register(name, email, password)
    return _token(user)


@router.post("/refresh", response_model=Token)
async def refresh(refresh_token: str = Body(..., embed=True), repos: Repositories = Depends(get_repositories)):
    claims = verify_refresh_token(refresh_token)
    user = await repos.identity.get(claims.id)
    if user is None:
        raise InvalidCredentials("Account no longer exists")
    return _token(user, refresh_token)


@router.get("/me", response_model=UserResponse)
async def me(current_user: UserResponse = Depends(get_current_user)):
    return current_user
