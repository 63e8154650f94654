"""Pin collection rules.

A location group hands out ``remaining`` slots. How a user may spend them
depends on the group's collection policy:

- SINGLE_SLOT_PER_GROUP: one collection per user across the whole group.
- ONE_SLOT_PER_LOCATION (multi-pin): one collection per user per pin.

Both policies refuse once ``remaining`` reaches zero. The decision is kept
free of I/O so the rules can be tested without a database.
"""

from __future__ import annotations

import enum


class CollectionPolicy(str, enum.Enum):
    SINGLE_SLOT_PER_GROUP = "single_slot_per_group"
    ONE_SLOT_PER_LOCATION = "one_slot_per_location"

    @classmethod
    def for_group(cls, multi_pin: bool) -> CollectionPolicy:
        return cls.ONE_SLOT_PER_LOCATION if multi_pin else cls.SINGLE_SLOT_PER_GROUP


class ConsumeDecision(str, enum.Enum):
    ALLOW = "allow"
    LIMIT_REACHED = "limit_reached"


def decide_consumption(
    policy: CollectionPolicy,
    remaining: int,
    consumed_location: bool,
    consumed_group: bool,
) -> ConsumeDecision:
    """Decide whether a user may collect a pin.

    Args:
        policy: The group's collection policy.
        remaining: Slots left in the group.
        consumed_location: The user already collected this pin.
        consumed_group: The user already collected any pin of this group.
    """
    if remaining <= 0:
        return ConsumeDecision.LIMIT_REACHED

    if policy is CollectionPolicy.ONE_SLOT_PER_LOCATION:
        already = consumed_location
    else:
        already = consumed_group or consumed_location

    return ConsumeDecision.LIMIT_REACHED if already else ConsumeDecision.ALLOW


def slot_key(policy: CollectionPolicy, group_id: int, location_id: str) -> str:
    """The uniqueness key a collection occupies for its user."""
    if policy is CollectionPolicy.ONE_SLOT_PER_LOCATION:
        return f"location:{location_id}"
    return f"group:{group_id}"
