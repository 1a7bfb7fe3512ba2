from __future__ import annotations

from scrapy.http import HtmlResponse

from souba_agent.models import CleansedListing, MarketAnalysis, MarketReport, Platform, RawListing
from souba_agent.utils.log import NoItemLogFormatter
from souba_agent.utils.pipelines import JsonifyPydantic


def analysis():
    item = CleansedListing.from_raw(
        RawListing(title="Nintendo Switch 本体", price_text="25,000円", platform=Platform.MERCARI), 25000, 2
    )
    rep = MarketReport(
        query="Nintendo Switch", listings=[item], count=1, avg_price=25000, max_price=25000, min_price=25000
    )
    return MarketAnalysis(report=rep)


def test_jsonify_pydantic_dumps_models():
    out = JsonifyPydantic().process_item(analysis(), spider=None)
    assert isinstance(out, dict)
    assert out["report"]["listings"][0]["platform"] == "mercari"
    assert out["evaluation"] is None


def test_jsonify_pydantic_passes_dicts_through():
    item = {"query": "x"}
    assert JsonifyPydantic().process_item(item, spider=None) is item


def test_log_formatter_summarises_reports():
    response = HtmlResponse(url="https://aucfan.com/search1/q-x/", body=b"")
    item = JsonifyPydantic().process_item(analysis(), spider=None)

    data = NoItemLogFormatter().scraped(item, response, spider=None)
    assert data["args"]["query"] == "Nintendo Switch"
    assert data["args"]["count"] == 1
    assert data["args"]["avg"] == 25000
    assert "item" not in data["args"]

    plain = NoItemLogFormatter().scraped({"other": 1}, response, spider=None)
    assert plain["args"] == {"src": response}
