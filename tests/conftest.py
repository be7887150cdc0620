"""
Shared pytest fixtures: in-memory database, deterministic layouts, a fake
clock and a uniform keyboard geometry.
"""
import random

import pytest
from argon2 import PasswordHasher
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from scrambler.credentials import CredentialStore
from scrambler.entities import Base
from scrambler.geometry import Geometry, Point
from scrambler.key_grid import KEY_GRID
from scrambler.layout import LayoutGenerator
from scrambler.session_store import InMemorySessionStore, SqlSessionStore

KEY_WIDTH = 50.0
ROW_HEIGHT = 40.0


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, future=True)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def generator():
    return LayoutGenerator(rng=random.Random(1234))


@pytest.fixture
def memory_store(generator, clock):
    return InMemorySessionStore(generator, ttl_seconds=3600, clock=clock)


@pytest.fixture
def sql_store(session_factory, generator, clock):
    return SqlSessionStore(session_factory, generator, ttl_seconds=3600, clock=clock)


@pytest.fixture
def credentials(session_factory):
    # cheap parameters; the tests only care about hash/verify agreeing
    hasher = PasswordHasher(time_cost=1, memory_cost=1024, parallelism=1)
    return CredentialStore(session_factory, hasher=hasher)


@pytest.fixture
def geometry():
    """Every key KEY_WIDTH wide, rows ROW_HEIGHT tall, no row offsets."""
    return Geometry.from_lists(
        width=KEY_WIDTH * max(len(row) for row in KEY_GRID),
        height=ROW_HEIGHT * len(KEY_GRID),
        key_widths=[[KEY_WIDTH] * len(row) for row in KEY_GRID],
        row_offsets=[0.0] * len(KEY_GRID),
    )


@pytest.fixture
def point_for():
    """Centre of cell (row, col) in the `geometry` fixture."""
    def _point_for(row: int, col: int) -> Point:
        return Point(x=col * KEY_WIDTH + KEY_WIDTH / 2, y=row * ROW_HEIGHT + ROW_HEIGHT / 2)
    return _point_for
