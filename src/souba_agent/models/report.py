"""Aggregate results produced for one query."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .listing import CleansedListing, Platform


class Tier(str, Enum):
    """Purchase advice, from most to least favourable."""

    NO_DATA = "no_data"
    INSUFFICIENT_DATA = "insufficient_data"
    STRONGLY_RECOMMENDED = "strongly_recommended"
    RECOMMENDED = "recommended"
    CONSIDER = "consider"
    CAUTION = "caution"
    NOT_RECOMMENDED = "not_recommended"
    REJECT = "reject"


class MarketReport(BaseModel):
    """Cleansed sold listings and their summary statistics."""

    query: str
    listings: List[CleansedListing] = Field(default_factory=list)
    count: int = 0
    avg_price: int = 0
    max_price: int = 0
    min_price: int = 0
    original_count: int = 0

    def platform_counts(self) -> Dict[Platform, int]:
        counts: Dict[Platform, int] = {}
        for item in self.listings:
            counts[item.platform] = counts.get(item.platform, 0) + 1
        return counts


class PurchaseEvaluation(BaseModel):
    """Landed cost, margin and advice for buying at ``acquisition_price``."""

    acquisition_price: int
    handling_fee: int = 0
    consumption_tax: int = 0
    total_cost: int
    profit: int
    profit_rate_percent: int = 0
    tier: Tier
    reason: str = ""


class SimilarProduct(BaseModel):
    query: str
    count: int
    avg_price: int


class MarketAnalysis(BaseModel):
    """Everything produced for a single query, as emitted by the spider and CLI."""

    report: MarketReport
    evaluation: Optional[PurchaseEvaluation] = None
    similar: List[SimilarProduct] = Field(default_factory=list)
