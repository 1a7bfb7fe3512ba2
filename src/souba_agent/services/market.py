"""Entry points of the extraction-and-filtering pipeline.

``build_market_report`` turns a fetched search page into a cleansed
``MarketReport``; ``evaluate_purchase`` prices an acquisition against it.
Neither performs I/O.
"""

from __future__ import annotations

import logging
from typing import Optional

from souba_agent.config import PipelineConfig
from souba_agent.filters import FilterEngine
from souba_agent.models import MarketReport, PurchaseEvaluation
from souba_agent.services.encoding import resolve_encoding
from souba_agent.services.scraper import extract_listings
from souba_agent.services.valuation import build_report, evaluate

logger = logging.getLogger(__name__)


def build_market_report(
    query: str,
    document: bytes,
    config: Optional[PipelineConfig] = None,
    hint: Optional[str] = None,
) -> MarketReport:
    cfg = config or PipelineConfig()
    text = resolve_encoding(document or b"", hint)
    raw = extract_listings(text, query, cfg)
    cleansed = FilterEngine(cfg.filters).cleanse(raw)
    report = build_report(query, cleansed, original_count=len(raw))
    logger.info(
        "%s: %d/%d listings kept, avg %d (min %d, max %d)",
        query,
        report.count,
        report.original_count,
        report.avg_price,
        report.min_price,
        report.max_price,
    )
    return report


def evaluate_purchase(
    report: MarketReport,
    acquisition_price: int,
    config: Optional[PipelineConfig] = None,
) -> PurchaseEvaluation:
    cfg = config or PipelineConfig()
    return evaluate(report, acquisition_price, cfg.evaluation)
