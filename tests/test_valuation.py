from __future__ import annotations

import pytest

from souba_agent.config import EvaluationConfig
from souba_agent.models import CleansedListing, MarketReport, RawListing, Tier
from souba_agent.services.valuation import PurchaseEvaluator, build_report, evaluate, round_half_up


def report(count, avg):
    return MarketReport(query="test", count=count, avg_price=avg, max_price=avg, min_price=avg, original_count=count)


def test_round_half_up():
    assert round_half_up(0.5) == 1
    assert round_half_up(2.5) == 3
    assert round_half_up(1087.5) == 1088
    assert round_half_up(1.4999) == 1


def test_loss_making_purchase_is_rejected():
    ev = evaluate(report(5, 9000), 10000)
    assert ev.total_cost == 11550
    assert ev.handling_fee == 500
    assert ev.consumption_tax == 1050
    assert ev.profit == -2550
    assert ev.profit_rate_percent == -22
    assert ev.tier is Tier.REJECT
    assert ev.reason == "loss 22%"


def test_profitable_purchase():
    ev = evaluate(report(5, 20000), 10000)
    assert ev.profit == 8450
    assert ev.profit_rate_percent == 73
    assert ev.tier is Tier.STRONGLY_RECOMMENDED
    assert ev.reason == "profit rate +73%"


def test_no_market_data():
    ev = evaluate(MarketReport(query="nothing"), 10000)
    assert ev.tier is Tier.NO_DATA
    assert ev.total_cost == 10000
    assert ev.profit == -10000
    assert ev.profit_rate_percent == 0


def test_few_listings_are_not_trusted():
    ev = evaluate(report(2, 20000), 10000)
    assert ev.tier is Tier.INSUFFICIENT_DATA
    assert ev.reason == "insufficient data (2 listings)"
    assert ev.total_cost == 11550


@pytest.mark.parametrize(
    "rate,tier",
    [
        (50, Tier.STRONGLY_RECOMMENDED),
        (49, Tier.RECOMMENDED),
        (30, Tier.RECOMMENDED),
        (29, Tier.CONSIDER),
        (20, Tier.CONSIDER),
        (19, Tier.CAUTION),
        (0, Tier.CAUTION),
        (-1, Tier.NOT_RECOMMENDED),
        (-10, Tier.NOT_RECOMMENDED),
        (-11, Tier.REJECT),
    ],
)
def test_tier_boundaries(rate, tier):
    assert PurchaseEvaluator().tier(rate) is tier


def test_custom_rates():
    cfg = EvaluationConfig(handling_fee_rate=0.0, tax_rate=0.0)
    ev = evaluate(report(5, 15000), 10000, cfg)
    assert ev.total_cost == 10000
    assert ev.profit_rate_percent == 50
    assert ev.tier is Tier.STRONGLY_RECOMMENDED


@pytest.mark.parametrize("price", [0, -100, True, 1.5, "10000"])
def test_invalid_acquisition_price(price):
    with pytest.raises(ValueError):
        evaluate(report(5, 9000), price)


def test_build_report_statistics():
    items = [
        CleansedListing.from_raw(RawListing(title=f"商品 {p}", price_text=f"{p}円"), p, None)
        for p in [1000, 1001, 1200]
    ]
    rep = build_report("q", items, original_count=7)
    assert (rep.count, rep.avg_price, rep.min_price, rep.max_price) == (3, 1067, 1000, 1200)
    assert rep.original_count == 7


def test_build_report_empty():
    rep = build_report("q", [], original_count=3)
    assert (rep.count, rep.avg_price, rep.min_price, rep.max_price) == (0, 0, 0, 0)
    assert rep.listings == []
    assert rep.original_count == 3
