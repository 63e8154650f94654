"""Pin collection endpoints: map listing, consume, list collected, claim, nearest."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from wadzzo.auth.dependencies import get_current_user
from wadzzo.database import get_session
from wadzzo.db.models import User
from wadzzo.errors import AppError
from wadzzo.game.schemas import (
    ArrowDirection,
    AvailableLocationResponse,
    AvailableLocationsResponse,
    ClaimPinResponse,
    ConsumedLocationResponse,
    ConsumedLocationsResponse,
    ConsumeLocationRequest,
    ConsumeLocationResponse,
    NearestLocationRequest,
    NearestLocationResponse,
    PinPosition,
)
from wadzzo.game.service import (
    claim_pin,
    consume_location,
    find_nearest_location,
    get_available_locations,
    get_consumed_locations,
)

router = APIRouter(prefix="/api/v1/game/locations", tags=["Game"])

DEFAULT_PIN_URL = "https://wadzzo.com/"
NO_DESCRIPTION = "No description provided"


@router.get("", response_model=AvailableLocationsResponse)
async def available_locations_endpoint(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Pins on the map for the current user, with their collected flag."""
    pins = await get_available_locations(db, user.id)
    return AvailableLocationsResponse(
        locations=[
            AvailableLocationResponse(
                id=pin.location.id,
                lat=pin.location.latitude,
                lng=pin.location.longitude,
                title=pin.group.title,
                description=pin.group.description or NO_DESCRIPTION,
                image_url=pin.group.image,
                url=pin.group.link or DEFAULT_PIN_URL,
                brand_id=pin.group.creator_id,
                auto_collect=pin.location.auto_collect,
                collected=pin.collected,
                collection_limit_remaining=pin.group.remaining,
            )
            for pin in pins
        ]
    )


@router.post("/consume", response_model=ConsumeLocationResponse)
async def consume_location_endpoint(
    body: ConsumeLocationRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Collect a pin for the current user."""
    try:
        outcome = await consume_location(db, user.id, body.location_id)
        await db.commit()
    except AppError:
        await db.rollback()
        raise

    return ConsumeLocationResponse(
        data="Location consumed",
        remaining=outcome.remaining,
        step_advanced=outcome.step_advanced,
    )


@router.get("/consumed", response_model=ConsumedLocationsResponse)
async def consumed_locations_endpoint(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """List the pins the current user has collected."""
    pins = await get_consumed_locations(db, user.id)
    return ConsumedLocationsResponse(
        locations=[
            ConsumedLocationResponse(
                id=pin.location.id,
                consumer_id=pin.consumer.id,
                lat=pin.location.latitude,
                lng=pin.location.longitude,
                title=pin.group.title,
                description=pin.group.description or NO_DESCRIPTION,
                image_url=pin.group.image,
                url=pin.group.link,
                brand_id=pin.group.creator_id,
                auto_collect=pin.location.auto_collect,
                viewed=pin.consumer.viewed_at is not None,
                claimed=pin.consumer.claimed_at is not None,
                collection_limit_remaining=pin.group.remaining,
                collected_at=pin.consumer.created_at,
            )
            for pin in pins
        ]
    )


@router.post("/consumed/{consumer_id}/claim", response_model=ClaimPinResponse)
async def claim_pin_endpoint(
    consumer_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Claim a collected pin."""
    try:
        consumer = await claim_pin(db, user.id, consumer_id)
        await db.commit()
    except AppError:
        await db.rollback()
        raise
    return ClaimPinResponse(id=consumer.id, claimed_at=consumer.claimed_at)


@router.post("/nearest", response_model=NearestLocationResponse)
async def nearest_location_endpoint(
    body: NearestLocationRequest,
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Nearest auto-collect pin with the bearing delta the AR arrow points along."""
    location, distance = await find_nearest_location(db, body.lat, body.lng)
    return NearestLocationResponse(
        nearest_location=PinPosition(id=location.id, latitude=location.latitude, longitude=location.longitude),
        distance_km=distance,
        arrow_direction=ArrowDirection(
            latitude=location.latitude - body.lat,
            longitude=location.longitude - body.lng,
        ),
    )
