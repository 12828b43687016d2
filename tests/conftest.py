# tests/conftest.py
from __future__ import annotations

import os
import time
from collections.abc import Callable, Generator, Iterator
from dataclasses import dataclass, field
from itertools import count
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Keep the app's own engine off the filesystem and away from redis.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("KV_BACKEND", "memory")

from texting_theory.api.v1 import dependencies as api_dependencies
from texting_theory.core.settings import Settings, settings
from texting_theory.db.session import Base
from texting_theory.db.session import get_db as app_get_session
from texting_theory.main import app as fastapi_app
from texting_theory.models import Post
from texting_theory.repositories.post_repo import PostRepository, TargetSpec
from texting_theory.services.engine import ConsensusEngine, EngineContext
from texting_theory.services.identity import AccountStanding, BanStatus, VoterStanding
from texting_theory.services.kv import InMemoryKeyValueStore
from texting_theory.services.platform import PlatformError

TEST_DB_URL = "sqlite://"

MS_PER_DAY = 24 * 60 * 60 * 1000
# 2026-01-01T00:00:00Z
START_MS = 1_767_225_600_000

_POST_COUNTER = count(1)


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, now_ms: int = START_MS) -> None:
        self.now = now_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeIdentity:
    """In-memory identity source; unknown users have no account."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.accounts: dict[str, AccountStanding] = {}
        self.bans: dict[str, BanStatus] = {}
        self.moderators: dict[str, bool | None] = {}
        self.moderator_lookups = 0

    def add_account(self, user_id: str, *, age_days: float = 365, karma: int = 500) -> None:
        self.accounts[user_id] = AccountStanding(
            user_id=user_id,
            username=f"u_{user_id}",
            created_at_ms=int(self.clock() - age_days * MS_PER_DAY),
            karma=karma,
        )

    def lookup_voter(self, user_id: str, community: str) -> VoterStanding:
        return VoterStanding(
            account=self.accounts.get(user_id),
            ban=self.ban_status(user_id, community),
        )

    def ban_status(self, user_id: str, community: str) -> BanStatus:
        return self.bans.get(user_id, BanStatus.NOT_BANNED)

    def is_moderator(self, user_id: str, community: str) -> bool | None:
        self.moderator_lookups += 1
        return self.moderators.get(user_id, False)


@dataclass
class FakeDisplay:
    """Records display effects instead of calling the platform."""

    post_flair: dict[str, tuple[str, str | None]] = field(default_factory=dict)
    user_flair: dict[str, str] = field(default_factory=dict)
    user_flair_colors: dict[str, str | None] = field(default_factory=dict)
    notifications: list[tuple[str, str, str]] = field(default_factory=list)
    post_flair_calls: int = 0
    fail: bool = False
    latency_seconds: float = 0.0

    def set_post_flair(
        self,
        post_id: str,
        text: str,
        *,
        background_color: str | None = None,
        text_color: str = "light",
    ) -> None:
        if self.fail:
            raise PlatformError("display unavailable")
        time.sleep(self.latency_seconds)
        self.post_flair_calls += 1
        self.post_flair[post_id] = (text, background_color)

    def get_user_flair(self, user_id: str, community: str) -> str | None:
        if self.fail:
            raise PlatformError("display unavailable")
        time.sleep(self.latency_seconds)
        return self.user_flair.get(user_id)

    def set_user_flair(
        self,
        user_id: str,
        community: str,
        text: str,
        *,
        background_color: str | None = None,
        text_color: str = "light",
    ) -> None:
        if self.fail:
            raise PlatformError("display unavailable")
        self.user_flair[user_id] = text
        self.user_flair_colors[user_id] = background_color

    def send_notification(self, user_id: str, subject: str, body: str) -> None:
        if self.fail:
            raise PlatformError("display unavailable")
        self.notifications.append((user_id, subject, body))


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Repositories commit, so wipe rows instead of rolling back.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def test_settings() -> Settings:
    """Provide a Settings instance with the production thresholds."""
    return Settings(kv_backend="memory")


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture()
def identity(clock: FakeClock) -> FakeIdentity:
    return FakeIdentity(clock)


@pytest.fixture()
def display() -> FakeDisplay:
    return FakeDisplay()


@pytest.fixture()
def engine_context(
    test_settings: Settings,
    kv: InMemoryKeyValueStore,
    identity: FakeIdentity,
    display: FakeDisplay,
    clock: FakeClock,
) -> EngineContext:
    return EngineContext(
        config=test_settings,
        kv=kv,
        identity=identity,
        display=display,
        clock=clock,
    )


@pytest.fixture()
def consensus_engine(engine_context: EngineContext, db_session: Session) -> ConsensusEngine:
    return ConsensusEngine(engine_context, PostRepository(db_session))


@pytest.fixture()
def make_post(
    consensus_engine: ConsensusEngine,
    identity: FakeIdentity,
) -> Callable[..., Post]:
    """Register a vote-mode post with ``target_count`` targets in order."""

    def _make_post(
        *,
        target_count: int = 3,
        creator_id: str = "creator",
        rating_side: str | None = None,
        title: str = "Rate my texting",
        mode: str = "vote",
        targets: list[TargetSpec] | None = None,
    ) -> Post:
        identity.add_account(creator_id)
        post_id = f"t3_post{next(_POST_COUNTER)}"
        specs = targets
        if specs is None:
            specs = [TargetSpec(id=f"b{index}", position=index) for index in range(target_count)]
        return consensus_engine.register_post(
            post_id=post_id,
            creator_id=creator_id,
            title=title,
            mode=mode,
            targets=specs,
            rating_side=rating_side,
        )

    return _make_post


@pytest.fixture()
def voters(identity: FakeIdentity) -> Callable[[int], list[str]]:
    """Create ``n`` eligible voter accounts and return their ids."""

    def _voters(n: int, prefix: str = "voter") -> list[str]:
        ids = [f"{prefix}{index}" for index in range(n)]
        for user_id in ids:
            identity.add_account(user_id)
        return ids

    return _voters


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    engine_context: EngineContext,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[api_dependencies.get_engine_context_dep] = lambda: engine_context
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(api_dependencies.get_engine_context_dep, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def create_access_token(subject: str, **claims: Any) -> str:
    payload = {"sub": subject, **claims}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


@pytest.fixture()
def auth_headers() -> Callable[[str], dict[str, str]]:
    """Return a helper building bearer headers for a platform user id."""

    def _headers(user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers
