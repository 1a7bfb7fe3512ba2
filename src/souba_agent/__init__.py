"""Sold-price research and purchase advice for second-hand marketplaces."""

from souba_agent.services.market import build_market_report, evaluate_purchase

__all__ = ["build_market_report", "evaluate_purchase"]
