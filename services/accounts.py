"""Account store: the persistence boundary used by the credential manager.

Every write is a single-document update so concurrent requests resolve with
last-writer-wins semantics at the document level.
"""

import logfire

from typing import Any, Dict, Optional, Protocol

from bson import ObjectId
from beanie import PydanticObjectId
from beanie.operators import AddToSet, Or, Set

from pymongo.errors import ConnectionFailure, DuplicateKeyError, PyMongoError

from models.helpers import utc_now
from models.users import User

from security.helpers import verify_password

from utils.exceptions import Conflict, Internal, ServiceUnavailable


class AccountStore(Protocol):
    """Operations the credential manager and the user handlers need from storage."""

    async def get_by_id(self, account_id: str) -> Optional[User]: ...

    async def find_by_identifier(
        self, username: Optional[str] = None, email: Optional[str] = None
    ) -> Optional[User]: ...

    async def create(self, account: User) -> User: ...

    async def update_fields(self, account_id: str, fields: Dict[str, Any]) -> Optional[User]: ...

    async def set_refresh_token(self, account_id: str, refresh_token: Optional[str]) -> None: ...

    async def add_to_watch_history(self, account_id: str, video_id: PydanticObjectId) -> None: ...

    def verify_password(self, account: User, password: str) -> bool: ...


class BeanieAccountStore:
    """AccountStore backed by the `users` collection.

    Connectivity problems surface as `ServiceUnavailable` so callers can retry
    them; every other driver error is an `Internal` error.
    """

    async def get_by_id(self, account_id: str) -> Optional[User]:
        if not ObjectId.is_valid(account_id):
            return None
        try:
            return await User.get(PydanticObjectId(account_id))
        except ConnectionFailure as e:
            logfire.error(f"Database connection failure when loading account {account_id}: {e}")
            raise ServiceUnavailable()
        except PyMongoError as e:
            logfire.error(f"Unexpected database error when loading account {account_id}: {e}")
            raise Internal("Failed to load account")

    async def find_by_identifier(
        self, username: Optional[str] = None, email: Optional[str] = None
    ) -> Optional[User]:
        conditions = []
        if username:
            conditions.append(User.username == username.strip().lower())
        if email:
            conditions.append(User.email == email.strip())

        if not conditions:
            return None

        try:
            return await User.find_one(Or(*conditions) if len(conditions) > 1 else conditions[0])
        except ConnectionFailure as e:
            logfire.error(f"Database connection failure when looking up account: {e}")
            raise ServiceUnavailable()
        except PyMongoError as e:
            logfire.error(f"Unexpected database error when looking up account: {e}")
            raise Internal("Failed to look up account")

    async def create(self, account: User) -> User:
        try:
            await account.insert()
        except DuplicateKeyError:
            logfire.warning(f"Attempt to create duplicate user: {account.username} / {account.email}")
            raise Conflict("User with username or email already exists")
        except ConnectionFailure as e:
            logfire.error(f"Database connection failure when creating user {account.username}: {e}")
            raise ServiceUnavailable()
        except PyMongoError as e:
            logfire.error(f"Unexpected database error when creating user {account.username}: {e}")
            raise Internal("Failed to create user account")

        logfire.info(f"Saved new user to database: {account.username}")
        return account

    async def update_fields(self, account_id: str, fields: Dict[str, Any]) -> Optional[User]:
        account = await self.get_by_id(account_id)
        if account is None:
            return None

        try:
            await account.set({**fields, "updated_at": utc_now()})
        except DuplicateKeyError:
            raise Conflict("Another account already uses these details")
        except ConnectionFailure as e:
            logfire.error(f"Database connection failure when updating account {account_id}: {e}")
            raise ServiceUnavailable()
        except PyMongoError as e:
            logfire.error(f"Unexpected database error when updating account {account_id}: {e}")
            raise Internal("Failed to update account")
        return account

    async def set_refresh_token(self, account_id: str, refresh_token: Optional[str]) -> None:
        try:
            await User.find_one(User.id == PydanticObjectId(account_id)).update(
                Set({User.refresh_token: refresh_token})
            )
        except ConnectionFailure as e:
            logfire.error(f"Database connection failure when storing refresh token for {account_id}: {e}")
            raise ServiceUnavailable()
        except PyMongoError as e:
            logfire.error(f"Unexpected database error when storing refresh token for {account_id}: {e}")
            raise Internal("Something went wrong while storing the refresh token")

    async def add_to_watch_history(self, account_id: str, video_id: PydanticObjectId) -> None:
        # A video already in the history keeps its original position
        try:
            await User.find_one(User.id == PydanticObjectId(account_id)).update(
                AddToSet({User.watch_history: video_id})
            )
        except ConnectionFailure as e:
            logfire.error(f"Database connection failure when updating watch history for {account_id}: {e}")
            raise ServiceUnavailable()
        except PyMongoError as e:
            logfire.error(f"Unexpected database error when updating watch history for {account_id}: {e}")
            raise Internal("Failed to update watch history")

    def verify_password(self, account: User, password: str) -> bool:
        return verify_password(password, account.password)


_account_store: Optional[AccountStore] = None


def get_account_store() -> AccountStore:
    """Get the account store instance."""
    global _account_store

    if _account_store is None:
        _account_store = BeanieAccountStore()

    return _account_store
