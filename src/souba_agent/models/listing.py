"""Data models for scraped sold listings."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


TITLE_MAX_LENGTH = 100


class Platform(str, Enum):
    """Marketplace a listing was sold on."""

    UNKNOWN = "unknown"
    MERCARI = "mercari"
    YAHOO_AUCTION = "yahoo_auction"


class RawListing(BaseModel):
    """A candidate sold item as it was found on the page."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1)
    price_text: str
    date_text: str = ""
    url: str = ""
    platform: Platform = Platform.UNKNOWN

    @field_validator("title", mode="before")
    @classmethod
    def _clip_title(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip()[:TITLE_MAX_LENGTH]
        return value


class CleansedListing(RawListing):
    """A listing with its price and age normalized."""

    price: int = Field(gt=0)
    months_ago: Optional[int] = Field(default=None, ge=0)

    @classmethod
    def from_raw(cls, raw: RawListing, price: int, months_ago: Optional[int]) -> "CleansedListing":
        return cls(**raw.model_dump(), price=price, months_ago=months_ago)
