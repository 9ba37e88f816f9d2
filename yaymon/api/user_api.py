from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile

from yaymon.api.deps import get_repositories, read_upload
from yaymon.models import Role
from yaymon.repositories import Repositories
from yaymon.schemas import UserCreateRequest, UserResponse, UserUpdateRequest

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/", response_model=UserResponse)
async def create_user(user_req: UserCreateRequest, repos: Repositories = Depends(get_repositories)):
    return await repos.identity.create(user_req.name, user_req.email, user_req.password, user_req.role)


@router.get("/", response_model=List[UserResponse])
async def list_users(repos: Repositories = Depends(get_repositories)):
    return await repos.identity.list_all()


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, repos: Repositories = Depends(get_repositories)):
    user = await repos.identity.get(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
        user_id: str,
        name: Optional[str] = Form(None),
        email: Optional[str] = Form(None),
        role: Optional[Role] = Form(None),
        password: Optional[str] = Form(None),
        photo: Optional[UploadFile] = File(None),
        repos: Repositories = Depends(get_repositories),
):
    fields = UserUpdateRequest(name=name, email=email, role=role, password=password or None)
    return await repos.identity.update(user_id, fields, photo=await read_upload(photo))


@router.delete("/{user_id}", status_code=204)
async def delete_user(user_id: str, repos: Repositories = Depends(get_repositories)):
    await repos.identity.remove(user_id)
