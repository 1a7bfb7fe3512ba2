"""Data models for the souba agent."""

from .listing import TITLE_MAX_LENGTH, CleansedListing, Platform, RawListing
from .report import MarketAnalysis, MarketReport, PurchaseEvaluation, SimilarProduct, Tier

__all__ = [
    "TITLE_MAX_LENGTH",
    "CleansedListing",
    "MarketAnalysis",
    "MarketReport",
    "Platform",
    "PurchaseEvaluation",
    "RawListing",
    "SimilarProduct",
    "Tier",
]
