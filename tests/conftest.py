import asyncio
import os

import logfire
import pytest

from datetime import datetime
from typing import Any, Dict, List, Optional

from beanie import PydanticObjectId, init_beanie
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient
from pydantic import BaseModel, Field

os.environ.setdefault("ACCESS_TOKEN_SECRET", "access-secret-for-tests")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "refresh-secret-for-tests")

logfire.configure(send_to_logfire=False, console=False)

from models.comments import Comment  # noqa: E402
from models.helpers import utc_now  # noqa: E402
from models.playlists import Playlist  # noqa: E402
from models.tweets import Tweet  # noqa: E402
from models.users import User  # noqa: E402
from models.videos import Video  # noqa: E402
from schema.security import TokenSettings  # noqa: E402
from security.credentials import CredentialManager, get_credential_manager  # noqa: E402
from security.helpers import get_password_hash, verify_password  # noqa: E402
from services.accounts import BeanieAccountStore, get_account_store  # noqa: E402
from utils.exceptions import Conflict, ServiceUnavailable  # noqa: E402


class Account(BaseModel):
    """Stand-in for the `User` document when Beanie is not initialised."""

    id: PydanticObjectId = Field(default_factory=PydanticObjectId)
    username: str
    email: str
    full_name: str
    avatar: str
    cover_image: Optional[str] = None
    password: str
    refresh_token: Optional[str] = None
    watch_history: List[PydanticObjectId] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class InMemoryAccountStore:
    """Account store kept in a dict. `failing_writes` makes the next refresh token writes fail."""

    def __init__(self):
        self.accounts: Dict[str, Account] = {}
        self.failing_writes = 0
        self.write_attempts = 0

    def add(self, **fields) -> Account:
        account = Account(**fields)
        self.accounts[str(account.id)] = account
        return account

    async def get_by_id(self, account_id: str) -> Optional[Account]:
        return self.accounts.get(str(account_id))

    async def find_by_identifier(self, username=None, email=None) -> Optional[Account]:
        for account in self.accounts.values():
            if username and account.username == username.strip().lower():
                return account
            if email and account.email == email.strip():
                return account
        return None

    async def create(self, account):
        if await self.find_by_identifier(account.username, account.email):
            raise Conflict("User with username or email already exists")
        self.accounts[str(account.id)] = account
        return account

    async def update_fields(self, account_id: str, fields: Dict[str, Any]) -> Optional[Account]:
        account = self.accounts.get(str(account_id))
        if account is None:
            return None
        for name, value in fields.items():
            setattr(account, name, value)
        account.updated_at = utc_now()
        return account

    async def set_refresh_token(self, account_id: str, refresh_token: Optional[str]) -> None:
        self.write_attempts += 1
        if self.failing_writes > 0:
            self.failing_writes -= 1
            raise ServiceUnavailable()
        account = self.accounts.get(str(account_id))
        if account is not None:
            account.refresh_token = refresh_token

    async def add_to_watch_history(self, account_id: str, video_id: PydanticObjectId) -> None:
        account = self.accounts.get(str(account_id))
        if account is not None and video_id not in account.watch_history:
            account.watch_history.append(video_id)

    def verify_password(self, account: Account, password: str) -> bool:
        return verify_password(password, account.password)


@pytest.fixture(scope="session")
def alice_password_hash() -> str:
    return get_password_hash("correct")


@pytest.fixture
def settings() -> TokenSettings:
    return TokenSettings(
        access_token_secret="access-secret-for-tests",
        refresh_token_secret="refresh-secret-for-tests",
    )


@pytest.fixture
def store(alice_password_hash) -> InMemoryAccountStore:
    store = InMemoryAccountStore()
    store.add(
        username="alice",
        email="alice@example.com",
        full_name="Alice Liddell",
        avatar="https://res.cloudinary.com/demo/image/upload/v1700000000/videotube/alice.png",
        password=alice_password_hash,
    )
    return store


@pytest.fixture
def alice(store) -> Account:
    return next(account for account in store.accounts.values() if account.username == "alice")


@pytest.fixture
def manager(store, settings) -> CredentialManager:
    return CredentialManager(store, settings, write_retries=2, backoff_base=0, backoff_cap=0)


@pytest.fixture
def client(manager, store):
    from main import app

    app.dependency_overrides[get_credential_manager] = lambda: manager
    app.dependency_overrides[get_account_store] = lambda: store

    # Secure cookies are only sent back over https
    yield TestClient(app, base_url="https://testserver")

    app.dependency_overrides.clear()


# Fixtures below run the routers against Beanie on an in-process mongomock database


@pytest.fixture
def database():
    client = AsyncMongoMockClient()
    database = client.get_database("videotube_test")
    asyncio.run(
        init_beanie(database=database, document_models=[User, Video, Tweet, Comment, Playlist])
    )
    return database


@pytest.fixture
def users(database, alice_password_hash) -> Dict[str, User]:
    """Alice and Bob, both with the password `correct`."""

    async def create():
        created = {}
        for username, full_name in (("alice", "Alice Liddell"), ("bob", "Bob Builder")):
            created[username] = await User(
                username=username,
                email=f"{username}@example.com",
                full_name=full_name,
                avatar=f"https://res.cloudinary.com/demo/image/upload/v1700000000/videotube/{username}.png",
                password=alice_password_hash,
            ).insert()
        return created

    return asyncio.run(create())


@pytest.fixture
def db_manager(database, settings) -> CredentialManager:
    return CredentialManager(BeanieAccountStore(), settings, write_retries=2, backoff_base=0, backoff_cap=0)


@pytest.fixture
def db_client(db_manager):
    from main import app

    app.dependency_overrides[get_credential_manager] = lambda: db_manager
    app.dependency_overrides[get_account_store] = lambda: db_manager.store

    yield TestClient(app, base_url="https://testserver")

    app.dependency_overrides.clear()


@pytest.fixture
def login_as(db_client, users):
    """Log a user in and return bearer headers, leaving no cookies behind."""

    def login(username: str) -> Dict[str, str]:
        response = db_client.post("/api/v1/users/login", json={"username": username, "password": "correct"})
        assert response.status_code == 200
        db_client.cookies.clear()
        return {"Authorization": f"Bearer {response.json()['data']['accessToken']}"}

    return login
