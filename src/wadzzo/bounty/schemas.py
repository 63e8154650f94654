"""Pydantic schemas for bounty endpoints."""

from __future__ import annotations

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field


class JoinBountyRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    bounty_id: int = Field(..., alias="bountyId", gt=0)


class JoinedResponse(BaseModel):
    is_joined: bool


class HuntStepRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=256)
    description: str | None = Field(None, max_length=2000)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    radius: float = Field(..., description="Scatter radius in metres")
    collection_limit: int
    start_date: AwareDatetime
    end_date: AwareDatetime
    auto_collect: bool = False
    pin_image: str | None = None
    pin_url: str | None = None


class CreateScavengerHuntRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=256)
    description: str = Field("", max_length=5000)
    winners: int = Field(1, ge=1)
    required_balance: float = Field(0, ge=0)
    price_usd: float = Field(0, ge=0)
    price_band: float = Field(0, ge=0)
    cover_image_urls: list[str] = []
    steps: list[HuntStepRequest]


class HuntStepResponse(BaseModel):
    location_group_id: int
    serial: int
    title: str
    remaining: int


class ScavengerHuntResponse(BaseModel):
    id: int
    title: str
    bounty_type: str
    total_winner: int
    steps: list[HuntStepResponse]
