from __future__ import annotations

import json

import pytest
import requests

from souba_agent.cli.search import main
from souba_agent.config import PipelineConfig
from souba_agent.models import SimilarProduct, Tier
from souba_agent.services.aucfan import AucfanClient, AucfanConfig, AucfanError, extract_keywords
from souba_agent.services.scraper import search_url

from pages import NO_RESULTS, result_list


class FakeResponse:
    def __init__(self, content, content_type="text/html; charset=UTF-8", status_code=200):
        self.content = content
        self.headers = {"Content-Type": content_type}
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    def __init__(self, pages):
        self.pages = pages
        self.urls = []

    def get(self, url, headers=None, timeout=None):
        self.urls.append(url)
        page = self.pages.get(url)
        if page is None:
            raise requests.ConnectionError("connection refused")
        return page


def client(pages):
    return AucfanClient(AucfanConfig(min_interval_secs=0, pipeline=PipelineConfig()), session=FakeSession(pages))


def page(rows, encoding="utf-8", content_type="text/html; charset=UTF-8"):
    return FakeResponse(result_list(rows).encode(encoding), content_type)


def test_extract_keywords():
    assert extract_keywords("iPhone 13 Pro 128GB") == ["128GB", "iPhone", "Pro"]
    assert extract_keywords("LOUIS VUITTON モノグラム バッグ M40712")[0] == "LOUIS VUITTON バッグ"
    assert extract_keywords("ab") == []


def test_report_decodes_declared_charset():
    rows = [("ワイヤレスイヤホン 第3世代", "12,000円"), ("ワイヤレスイヤホン 第2世代", "9,000円")]
    c = client({search_url("イヤホン"): page(rows, "euc_jp", "text/html; charset=EUC-JP")})
    rep = c.report("イヤホン")
    assert rep.count == 2
    assert rep.listings[0].title == "ワイヤレスイヤホン 第3世代"


def test_fetch_failure_raises():
    c = client({search_url("broken"): FakeResponse(b"", status_code=503)})
    with pytest.raises(AucfanError):
        c.fetch("broken")
    with pytest.raises(AucfanError):
        c.fetch("unreachable")


def test_analyze_searches_similar_when_thin():
    query = "iPhone 13 Pro 128GB"
    pages = {
        search_url(query): page([("iPhone 13 Pro 128GB シエラブルー", "82,000円")]),
        search_url("128GB"): page([("SSD 128GB 新品", "3,000円"), ("SSD 128GB 中古", "2,000円")]),
        # "iPhone" is missing: the similar search skips the failure
        search_url("Pro"): FakeResponse(NO_RESULTS.encode("utf-8")),
    }
    c = client(pages)
    analysis = c.analyze(query, acquisition_price=60000)

    assert analysis.report.count == 1
    assert analysis.evaluation is not None
    assert analysis.evaluation.tier is Tier.INSUFFICIENT_DATA
    assert analysis.similar == [SimilarProduct(query="128GB", count=2, avg_price=2500)]
    assert len(c.session.urls) == 4


def test_analyze_skips_similar_when_enough_data():
    rows = [(f"Nintendo Switch 本体 {i}", f"{30000 + i * 100}円") for i in range(6)]
    c = client({search_url("Nintendo Switch"): page(rows)})
    analysis = c.analyze("Nintendo Switch")

    assert analysis.report.count == 6
    assert analysis.evaluation is None
    assert analysis.similar == []
    assert len(c.session.urls) == 1


def test_cli_reads_saved_page(tmp_path, capsys):
    saved = tmp_path / "search.html"
    rows = [("ポータブル電源 500W", p) for p in ["1,000円", "1,200円", "1,100円", "50,000円", "1,050円"]]
    saved.write_bytes(result_list(rows).encode("shift_jis"))

    assert main(["ポータブル電源", "--file", str(saved), "--price", "1000"]) == 0

    out = json.loads(capsys.readouterr().out)
    assert out["report"]["count"] == 4
    assert out["report"]["avg_price"] == 1088
    assert out["evaluation"]["tier"] == "not_recommended"
    assert out["similar"] == []


def test_cli_reports_fetch_errors(monkeypatch, capsys):
    def fail(self, query):
        raise AucfanError("failed to fetch market prices for 'x': timeout")

    monkeypatch.setattr(AucfanClient, "fetch", fail)
    assert main(["x", "--no-similar"]) == 1
    assert "error: failed to fetch" in capsys.readouterr().err


def test_cli_rejects_non_positive_price():
    with pytest.raises(SystemExit):
        main(["x", "--price", "0"])
