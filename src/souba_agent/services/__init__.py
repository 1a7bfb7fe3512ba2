"""Service layer for the souba agent."""

from .market import build_market_report, evaluate_purchase
from .scraper import MarketSpider, extract_listings

__all__ = ["MarketSpider", "build_market_report", "evaluate_purchase", "extract_listings"]
