from __future__ import annotations

import math
from typing import Optional, Sequence

from souba_agent.config import EvaluationConfig
from souba_agent.models import CleansedListing, MarketReport, PurchaseEvaluation, Tier


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def build_report(query: str, listings: Sequence[CleansedListing], original_count: int) -> MarketReport:
    prices = [item.price for item in listings]
    if not prices:
        return MarketReport(query=query, original_count=original_count)
    return MarketReport(
        query=query,
        listings=list(listings),
        count=len(prices),
        avg_price=round_half_up(sum(prices) / len(prices)),
        max_price=max(prices),
        min_price=min(prices),
        original_count=original_count,
    )


class PurchaseEvaluator:
    def __init__(self, cfg: EvaluationConfig | None = None) -> None:
        self.cfg = cfg or EvaluationConfig()

    def landed_cost(self, acquisition_price: int) -> tuple[int, int, int]:
        """Return ``(total_cost, handling_fee, consumption_tax)``."""
        total = round_half_up(acquisition_price * (1 + self.cfg.handling_fee_rate) * (1 + self.cfg.tax_rate))
        fee = round_half_up(acquisition_price * self.cfg.handling_fee_rate)
        return total, fee, total - acquisition_price - fee

    def tier(self, profit_rate_percent: int) -> Tier:
        cfg = self.cfg
        if profit_rate_percent >= cfg.strongly_recommended_rate:
            return Tier.STRONGLY_RECOMMENDED
        if profit_rate_percent >= cfg.recommended_rate:
            return Tier.RECOMMENDED
        if profit_rate_percent >= cfg.consider_rate:
            return Tier.CONSIDER
        if profit_rate_percent >= cfg.caution_rate:
            return Tier.CAUTION
        if profit_rate_percent >= cfg.not_recommended_rate:
            return Tier.NOT_RECOMMENDED
        return Tier.REJECT

    def evaluate(self, report: MarketReport, acquisition_price: int) -> PurchaseEvaluation:
        if isinstance(acquisition_price, bool) or not isinstance(acquisition_price, int) or acquisition_price <= 0:
            raise ValueError(f"acquisition_price must be a positive integer, got {acquisition_price!r}")

        if report.avg_price == 0 or report.count == 0:
            return PurchaseEvaluation(
                acquisition_price=acquisition_price,
                total_cost=acquisition_price,
                profit=report.avg_price - acquisition_price,
                tier=Tier.NO_DATA,
                reason="no market data",
            )

        total, fee, tax = self.landed_cost(acquisition_price)
        profit = report.avg_price - total
        rate = round_half_up(100 * profit / total)
        if report.count < self.cfg.min_confident_count:
            tier = Tier.INSUFFICIENT_DATA
            reason = f"insufficient data ({report.count} listings)"
        else:
            tier = self.tier(rate)
            reason = f"profit rate {rate:+d}%" if rate >= 0 else f"loss {abs(rate)}%"
        return PurchaseEvaluation(
            acquisition_price=acquisition_price,
            handling_fee=fee,
            consumption_tax=tax,
            total_cost=total,
            profit=profit,
            profit_rate_percent=rate,
            tier=tier,
            reason=reason,
        )


def evaluate(report: MarketReport, acquisition_price: int, cfg: Optional[EvaluationConfig] = None) -> PurchaseEvaluation:
    return PurchaseEvaluator(cfg).evaluate(report, acquisition_price)
