"""ORM models for the pin-collection game, bounties, notifications and payouts."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wadzzo.db.base import Base, JSONType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """A platform account. The primary key is the user's Stellar public key."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(56), primary_key=True)
    name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True, unique=True)
    is_banned: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


# ---------------------------------------------------------------------------
# Map pins
# ---------------------------------------------------------------------------


class LocationGroup(Base):
    """A pool of collectible slots shared by one or more pins."""

    __tablename__ = "location_groups"
    __table_args__ = (CheckConstraint("remaining >= 0", name="remaining_non_negative"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    creator_id: Mapped[str] = mapped_column(String(56), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image: Mapped[str | None] = mapped_column(Text, nullable=True)
    link: Mapped[str | None] = mapped_column(Text, nullable=True)
    limit: Mapped[int] = mapped_column(Integer, nullable=False)
    remaining: Mapped[int] = mapped_column(Integer, nullable=False)
    multi_pin: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    approved: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    creator: Mapped[User] = relationship("User")
    locations: Mapped[list[Location]] = relationship("Location", back_populates="location_group")


class Location(Base):
    """A single collectible pin on the map."""

    __tablename__ = "locations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    location_group_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("location_groups.id", ondelete="CASCADE"), nullable=True, index=True
    )
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    auto_collect: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    location_group: Mapped[LocationGroup | None] = relationship("LocationGroup", back_populates="locations")


class LocationConsumer(Base):
    """A user's collection of a pin.

    ``slot_key`` names the slot the collection used: ``group:<id>`` for
    single-slot groups, ``location:<id>`` for multi-pin groups. The unique
    ``(user_id, slot_key)`` pair makes a second collection of the same slot
    fail at the database.
    """

    __tablename__ = "location_consumers"
    __table_args__ = (
        UniqueConstraint("location_id", "user_id", name="location_consumers_location_user_key"),
        UniqueConstraint("user_id", "slot_key", name="location_consumers_user_slot_key"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    location_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("locations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[str] = mapped_column(String(56), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    slot_key: Mapped[str] = mapped_column(String(64), nullable=False)
    hidden: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    viewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    location: Mapped[Location] = relationship("Location")


# ---------------------------------------------------------------------------
# Bounties
# ---------------------------------------------------------------------------


class BountyStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class BountyType(str, enum.Enum):
    GENERAL = "GENERAL"
    SCAVENGER_HUNT = "SCAVENGER_HUNT"


class Bounty(Base):
    """A creator challenge with a reward pool."""

    __tablename__ = "bounties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    creator_id: Mapped[str] = mapped_column(String(56), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    required_balance: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    total_winner: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    price_in_usd: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    price_in_band: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    status: Mapped[BountyStatus] = mapped_column(
        Enum(BountyStatus, name="bounty_status", native_enum=False), default=BountyStatus.PENDING
    )
    bounty_type: Mapped[BountyType] = mapped_column(
        Enum(BountyType, name="bounty_type", native_enum=False), default=BountyType.GENERAL
    )
    image_urls: Mapped[list[str]] = mapped_column(JSONType, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    participants: Mapped[list[BountyParticipant]] = relationship("BountyParticipant", back_populates="bounty")
    action_locations: Mapped[list[ActionLocation]] = relationship("ActionLocation", back_populates="bounty")


class BountyParticipant(Base):
    """A user's participation in a bounty; ``current_step`` tracks scavenger-hunt progress."""

    __tablename__ = "bounty_participants"
    __table_args__ = (UniqueConstraint("bounty_id", "user_id", name="bounty_participants_bounty_user_key"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    bounty_id: Mapped[int] = mapped_column(Integer, ForeignKey("bounties.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[str] = mapped_column(String(56), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    current_step: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    bounty: Mapped[Bounty] = relationship("Bounty", back_populates="participants")


class ActionLocation(Base):
    """Links a location group to a bounty as one scavenger-hunt step."""

    __tablename__ = "action_locations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    bounty_id: Mapped[int] = mapped_column(Integer, ForeignKey("bounties.id", ondelete="CASCADE"), nullable=False)
    location_group_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("location_groups.id", ondelete="CASCADE"), nullable=False, index=True
    )
    creator_id: Mapped[str] = mapped_column(String(56), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    serial: Mapped[int] = mapped_column(Integer, nullable=False)

    bounty: Mapped[Bounty] = relationship("Bounty", back_populates="action_locations")


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class NotificationObject(Base):
    """What happened (actor + entity). Fanned out to recipients through Notification rows."""

    __tablename__ = "notification_objects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor_id: Mapped[str] = mapped_column(String(56), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False)
    is_user: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    notifications: Mapped[list[Notification]] = relationship(
        "Notification", back_populates="notification_object", cascade="all, delete-orphan"
    )


class Notification(Base):
    """One recipient's copy of a notification object."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    notification_object_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("notification_objects.id", ondelete="CASCADE"), nullable=False
    )
    notifier_id: Mapped[str] = mapped_column(
        String(56), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    is_creator: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    is_seen: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    notification_object: Mapped[NotificationObject] = relationship(
        "NotificationObject", back_populates="notifications"
    )


# ---------------------------------------------------------------------------
# Reward payouts
# ---------------------------------------------------------------------------


class RewardDistribution(Base):
    """A stored payout list, distributed in batches by the reward worker."""

    __tablename__ = "reward_distributions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    data: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False)
    total_balance: Mapped[Decimal | None] = mapped_column(Numeric(20, 7), nullable=True)
    is_distributed: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    completed_users: Mapped[list[str]] = mapped_column(JSONType, default=list)
    last_error: Mapped[Any | None] = mapped_column(JSONType, nullable=True)
    rewarded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class BlockedWallet(Base):
    """Wallets excluded from reward payouts."""

    __tablename__ = "blocked_wallets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    wallet_address: Mapped[str] = mapped_column(String(56), nullable=False, unique=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
