"""Shared test fixtures.

Tests run against a throwaway SQLite file (aiosqlite) with the schema created
from the ORM metadata. Redis is left uninitialized, so rate limiting and
notification pushes are skipped.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient
from stellar_sdk import Keypair

from wadzzo.auth.jwt import create_access_token, reset_keys
from wadzzo.config import get_settings
from wadzzo.database import close_db, get_engine, init_db, session_scope
from wadzzo.db.base import Base
from wadzzo.db.models import (
    ActionLocation,
    Bounty,
    BountyParticipant,
    BountyType,
    Location,
    LocationGroup,
    User,
)


def _write_test_keys() -> None:
    """Generate an RSA key pair for session tokens and point settings at it."""
    key_dir = Path(tempfile.mkdtemp(prefix="wadzzo_test_keys_"))
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

    private_path = key_dir / "jwt_private.pem"
    public_path = key_dir / "jwt_public.pem"
    private_path.write_bytes(
        private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    public_path.write_bytes(
        private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
    )

    os.environ["WADZZO_JWT_PRIVATE_KEY_PATH"] = str(private_path)
    os.environ["WADZZO_JWT_PUBLIC_KEY_PATH"] = str(public_path)


_write_test_keys()
os.environ["WADZZO_LOG_FORMAT"] = "console"
get_settings.cache_clear()
reset_keys()


def new_pubkey() -> str:
    return Keypair.random().public_key


@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncGenerator[None, None]:
    """Fresh SQLite database with all tables created."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'wadzzo.db'}"
    os.environ["WADZZO_DATABASE_URL"] = url
    get_settings.cache_clear()

    await init_db(url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    await close_db()


@pytest_asyncio.fixture
async def client(database: None) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client bound to the app and the test database."""
    from wadzzo.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class Seeder:
    """Inserts fixture rows, each in its own committed transaction."""

    async def user(self, pubkey: str | None = None, is_banned: bool = False) -> str:
        pubkey = pubkey or new_pubkey()
        async with session_scope() as db:
            db.add(User(id=pubkey, is_banned=is_banned))
            await db.commit()
        return pubkey

    async def group(
        self,
        creator_id: str,
        limit: int = 5,
        remaining: int | None = None,
        multi_pin: bool = False,
        pins: int = 2,
        auto_collect: bool = False,
        coords: list[tuple[float, float]] | None = None,
        approved: bool | None = True,
        end_date: datetime | None = None,
    ) -> tuple[int, list[str]]:
        """Create a location group and its pins. Returns (group_id, location_ids)."""
        now = datetime.now(timezone.utc)
        coords = coords or [(10.0 + i * 0.001, 20.0) for i in range(pins)]
        async with session_scope() as db:
            group = LocationGroup(
                creator_id=creator_id,
                title="Coffee drop",
                description="Free coffee",
                limit=limit,
                remaining=limit if remaining is None else remaining,
                multi_pin=multi_pin,
                approved=approved,
                start_date=now - timedelta(days=1),
                end_date=end_date or now + timedelta(days=1),
            )
            db.add(group)
            await db.flush()
            locations = [
                Location(location_group_id=group.id, latitude=lat, longitude=lng, auto_collect=auto_collect)
                for lat, lng in coords
            ]
            db.add_all(locations)
            await db.commit()
            return group.id, [loc.id for loc in locations]

    async def orphan_location(self) -> str:
        async with session_scope() as db:
            location = Location(location_group_id=None, latitude=1.0, longitude=1.0)
            db.add(location)
            await db.commit()
            return location.id

    async def bounty(
        self,
        creator_id: str,
        group_ids: list[int] | None = None,
        participants: list[str] | None = None,
    ) -> int:
        """Create a bounty, optionally linked to location groups and with joined users."""
        async with session_scope() as db:
            bounty = Bounty(
                creator_id=creator_id,
                title="Find the pins",
                description="",
                bounty_type=BountyType.SCAVENGER_HUNT if group_ids else BountyType.GENERAL,
            )
            db.add(bounty)
            await db.flush()
            for serial, group_id in enumerate(group_ids or [], start=1):
                db.add(
                    ActionLocation(
                        bounty_id=bounty.id,
                        location_group_id=group_id,
                        creator_id=creator_id,
                        serial=serial,
                    )
                )
            for user_id in participants or []:
                db.add(BountyParticipant(bounty_id=bounty.id, user_id=user_id))
            await db.commit()
            return bounty.id


@pytest.fixture
def seed(database: None) -> Seeder:
    return Seeder()


def auth_headers(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
def auth() -> object:
    """Build bearer headers for a user id."""
    return auth_headers


class FakeLedger:
    """In-memory stand-in for Horizon.

    ``failures`` lists exceptions (or ``False`` for an unsuccessful result)
    consumed by successive ``submit`` calls; once exhausted, submissions succeed.
    """

    def __init__(self, trusted: set[str] | None = None, failures: list[object] | None = None) -> None:
        self.trusted = trusted
        self.failures = list(failures or [])
        self.sequence = 1000
        self.submitted: list[object] = []
        self.attempts = 0

    async def load_account(self, account_id: str):
        from stellar_sdk import Account

        return Account(account_id, self.sequence)

    async def has_trustline(self, account_id: str, asset: object) -> bool:
        return self.trusted is None or account_id in self.trusted

    async def submit(self, envelope):
        self.attempts += 1
        if self.failures:
            failure = self.failures.pop(0)
            if failure is False:
                return {"hash": envelope.hash_hex(), "successful": False}
            raise failure  # type: ignore[misc]
        self.submitted.append(envelope)
        self.sequence += 1
        return {"hash": envelope.hash_hex(), "successful": True}


@pytest.fixture
def fake_ledger() -> type[FakeLedger]:
    return FakeLedger


@pytest.fixture
def distributor_config():
    from stellar_sdk import Asset, Network

    from wadzzo.rewards.distributor import DistributorConfig

    return DistributorConfig(
        keypair=Keypair.random(),
        asset=Asset("WADZZO", Keypair.random().public_key),
        network_passphrase=Network.TESTNET_NETWORK_PASSPHRASE,
    )
