from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
import logging
from typing import Iterable, List, Optional, Sequence

from souba_agent.config import FilterConfig
from souba_agent.models import CleansedListing, RawListing
from souba_agent.services.normalize import months_ago, normalize_price

logger = logging.getLogger(__name__)


@dataclass
class FilterResult:
    included: bool
    reasons: List[str] = field(default_factory=list)


def ad_keyword_hit(title: str, keywords: Iterable[str]) -> Optional[str]:
    """Return the first denylisted keyword found in ``title``, case-insensitively."""
    t = title.lower()
    for kw in _norm(keywords):
        if kw in t:
            return kw
    return None


def _norm(words: Iterable[str]) -> List[str]:
    return [w.strip().lower() for w in words if w and w.strip()]


def quartiles(prices: Sequence[int]) -> tuple[int, int]:
    """Index-based (non-interpolated) first and third quartiles."""
    ordered = sorted(prices)
    n = len(ordered)
    return ordered[int(n * 0.25)], ordered[int(n * 0.75)]


class FilterEngine:
    """Turn raw listings into a cleansed, outlier-free set.

    Stages run in order: ad/noise removal, recency window, IQR outlier
    rejection. The input is never mutated; dropped listings are logged.
    """

    def __init__(self, config: FilterConfig | None = None, today: Optional[date] = None) -> None:
        self.config = config or FilterConfig()
        self.today = today

    def apply(self, listing: CleansedListing) -> FilterResult:
        """Ad/noise verdict for a single listing."""
        reasons: List[str] = []
        kw = ad_keyword_hit(listing.title, self.config.ad_keywords)
        if kw is not None:
            reasons.append(f"ad_keyword:{kw}")
            return FilterResult(False, reasons)
        if listing.price < self.config.min_price:
            reasons.append("price_below_min")
            return FilterResult(False, reasons)
        return FilterResult(True, reasons)

    def normalize(self, raw: Iterable[RawListing]) -> List[CleansedListing]:
        out: List[CleansedListing] = []
        for item in raw:
            price = normalize_price(item.price_text)
            if price <= 0:
                logger.debug("Dropping %r: no price in %r", item.title, item.price_text)
                continue
            out.append(CleansedListing.from_raw(item, price, months_ago(item.date_text, self.today)))
        return out

    def remove_ads(self, items: Sequence[CleansedListing]) -> List[CleansedListing]:
        kept: List[CleansedListing] = []
        for item in items:
            result = self.apply(item)
            if result.included:
                kept.append(item)
            else:
                logger.debug("Excluded %r (%d): %s", item.title, item.price, ", ".join(result.reasons))
        logger.info("Ad filter: %d -> %d", len(items), len(kept))
        return kept

    def restrict_recent(self, items: Sequence[CleansedListing]) -> List[CleansedListing]:
        cfg = self.config
        kept = list(items)
        if cfg.recency_months is not None:
            kept = [i for i in kept if i.months_ago is None or i.months_ago <= cfg.recency_months]
        if cfg.sort_by_recency:
            # Undated listings go last; ties keep extraction order
            kept.sort(key=lambda i: (i.months_ago is None, i.months_ago or 0))
        if cfg.recent_limit is not None:
            kept = kept[: cfg.recent_limit]
        logger.info("Recency filter: %d -> %d", len(items), len(kept))
        return kept

    def reject_outliers(self, items: Sequence[CleansedListing]) -> List[CleansedListing]:
        cfg = self.config
        if len(items) < cfg.outlier_min_count:
            return list(items)
        q1, q3 = quartiles([i.price for i in items])
        iqr = q3 - q1
        lower = max(cfg.min_price, q1 - iqr * cfg.iqr_multiplier)
        upper = q3 + iqr * cfg.iqr_multiplier
        kept = [i for i in items if lower <= i.price <= upper]
        logger.info("Outlier filter: %d -> %d (range %.0f-%.0f)", len(items), len(kept), lower, upper)
        if len(kept) < cfg.outlier_min_survivors:
            logger.info("Outlier filter left too few listings; keeping first %d unfiltered", cfg.fallback_cap)
            return list(items)[: cfg.fallback_cap]
        return kept

    def cleanse(self, raw: Iterable[RawListing]) -> List[CleansedListing]:
        items = self.normalize(raw)
        items = self.remove_ads(items)
        items = self.restrict_recent(items)
        return self.reject_outliers(items)
