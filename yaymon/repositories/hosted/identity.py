from typing import List, Optional, Tuple

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from yaymon.errors import DuplicateEmail, NotFound
from yaymon.repositories.base import BlobStore, IdentityDirectory
from yaymon.repositories.hosted.handle import USERS, HostedHandle, from_document, to_document
from yaymon.repositories.live import LiveQueries
from yaymon.schemas import UserResponse


def _user(document: Optional[dict]) -> Optional[UserResponse]:
    if document is None:
        return None
    return UserResponse.model_validate(from_document(document))


class HostedIdentityDirectory(IdentityDirectory):

    def __init__(self, handle: HostedHandle, blobs: BlobStore, live: LiveQueries):
        super().__init__(blobs, live)
        self._handle = handle

    async def get(self, user_id: str) -> Optional[UserResponse]:
        return await self._handle.run(lambda db: _user(db[USERS].find_one({"_id": user_id})))

    async def list_all(self) -> List[UserResponse]:
        return await self._handle.run(lambda db: [_user(d) for d in db[USERS].find({})])

    async def _find_credentials(self, email: str) -> Optional[Tuple[UserResponse, str]]:
        def work(db: Database):
            document = db[USERS].find_one({"email": email})
            if document is None:
                return None
            return _user(document), document.get("password", "")

        return await self._handle.run(work)

    async def _insert(self, user: UserResponse, password_hash: str) -> UserResponse:
        document = to_document(user.model_dump())
        document["password"] = password_hash

        def work(db: Database) -> UserResponse:
            try:
                db[USERS].insert_one(document)
            except DuplicateKeyError as e:
                raise DuplicateEmail(f"User with email {user.email} already exists") from e
            return user

        return await self._handle.run(work)

    async def _apply(self, user_id: str, changes: dict) -> UserResponse:
        def work(db: Database) -> UserResponse:
            if not changes:
                document = db[USERS].find_one({"_id": user_id})
                if document is None:
                    raise NotFound(f"User {user_id} not found")
                return _user(document)
            try:
                document = db[USERS].find_one_and_update(
                    {"_id": user_id},
                    {"$set": to_document(changes)},
                    return_document=ReturnDocument.AFTER,
                )
            except DuplicateKeyError as e:
                raise DuplicateEmail(f"User with email {changes.get('email')} already exists") from e
            if document is None:
                raise NotFound(f"User {user_id} not found")
            return _user(document)

        return await self._handle.run(work)

    async def _delete(self, user_id: str) -> None:
        def work(db: Database) -> None:
            if db[USERS].delete_one({"_id": user_id}).deleted_count == 0:
                raise NotFound(f"User {user_id} not found")

        await self._handle.run(work)
