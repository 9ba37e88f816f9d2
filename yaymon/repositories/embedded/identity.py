from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from yaymon.errors import DuplicateEmail, NotFound
from yaymon.models import User
from yaymon.repositories.base import BlobStore, IdentityDirectory
from yaymon.repositories.embedded.handle import EmbeddedHandle
from yaymon.repositories.live import LiveQueries
from yaymon.schemas import UserResponse


def _flush_unique_email(session: Session, email: str) -> None:
    try:
        session.flush()
    except IntegrityError as e:
        raise DuplicateEmail(f"User with email {email} already exists") from e


class EmbeddedIdentityDirectory(IdentityDirectory):

    def __init__(self, handle: EmbeddedHandle, blobs: BlobStore, live: LiveQueries):
        super().__init__(blobs, live)
        self._handle = handle

    async def get(self, user_id: str) -> Optional[UserResponse]:
        return await self._handle.run(lambda session: UserResponse.from_user(session.get(User, user_id)))

    async def list_all(self) -> List[UserResponse]:
        return await self._handle.run(
            lambda session: [UserResponse.from_user(u) for u in session.exec(select(User)).all()]
        )

    async def _find_credentials(self, email: str) -> Optional[Tuple[UserResponse, str]]:
        def work(session: Session):
            user = session.exec(select(User).where(User.email == email)).first()
            if user is None:
                return None
            return UserResponse.from_user(user), user.password

        return await self._handle.run(work)

    async def _insert(self, user: UserResponse, password_hash: str) -> UserResponse:
        def work(session: Session) -> UserResponse:
            record = User(**user.model_dump(), password=password_hash)
            session.add(record)
            _flush_unique_email(session, user.email)
            return UserResponse.from_user(record)

        return await self._handle.run(work)

    async def _apply(self, user_id: str, changes: dict) -> UserResponse:
        def work(session: Session) -> UserResponse:
            record = session.get(User, user_id)
            if record is None:
                raise NotFound(f"User {user_id} not found")
            for key, value in changes.items():
                setattr(record, key, value)
            session.add(record)
            _flush_unique_email(session, record.email)
            return UserResponse.from_user(record)

        return await self._handle.run(work)

    async def _delete(self, user_id: str) -> None:
        def work(session: Session) -> None:
            record = session.get(User, user_id)
            if record is None:
                raise NotFound(f"User {user_id} not found")
            session.delete(record)

        await self._handle.run(work)
