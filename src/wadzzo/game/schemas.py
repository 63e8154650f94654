"""Pydantic schemas for pin collection endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ActionResponse(BaseModel):
    success: bool = True
    data: str


class ConsumeLocationRequest(BaseModel):
    location_id: str = Field(..., min_length=1, max_length=64)


class ConsumeLocationResponse(ActionResponse):
    remaining: int
    step_advanced: bool


class ConsumedLocationResponse(BaseModel):
    id: str
    consumer_id: str
    lat: float
    lng: float
    title: str
    description: str
    image_url: str | None = None
    url: str | None = None
    brand_id: str
    auto_collect: bool
    collected: bool = True
    viewed: bool
    claimed: bool
    collection_limit_remaining: int
    collected_at: datetime | None = None


class ConsumedLocationsResponse(BaseModel):
    locations: list[ConsumedLocationResponse]


class NearestLocationRequest(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class PinPosition(BaseModel):
    id: str
    latitude: float
    longitude: float


class ArrowDirection(BaseModel):
    latitude: float
    longitude: float


class NearestLocationResponse(BaseModel):
    nearest_location: PinPosition
    distance_km: float
    arrow_direction: ArrowDirection


class ClaimPinResponse(BaseModel):
    id: str
    claimed_at: datetime


class AvailableLocationResponse(BaseModel):
    id: str
    lat: float
    lng: float
    title: str
    description: str
    image_url: str | None = None
    url: str
    brand_id: str
    auto_collect: bool
    collected: bool
    collection_limit_remaining: int


class AvailableLocationsResponse(BaseModel):
    locations: list[AvailableLocationResponse]
