from __future__ import annotations

import logging
import os
import re
import time
from dataclasses import dataclass, field
from typing import List, Optional

import requests

from souba_agent.config import PipelineConfig
from souba_agent.models import MarketAnalysis, MarketReport, SimilarProduct
from souba_agent.services.encoding import declared_charset
from souba_agent.services.market import build_market_report, evaluate_purchase
from souba_agent.services.scraper import search_url

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

BRANDS = ["LOUIS VUITTON", "ルイヴィトン", "CHANEL", "シャネル", "HERMES", "エルメス", "GUCCI", "グッチ", "PRADA", "プラダ"]
CATEGORIES = ["バッグ", "bag", "財布", "wallet", "時計", "watch", "iPhone", "iPad"]
STOPWORDS = {"the", "and", "for", "with"}


class AucfanError(RuntimeError):
    """Raised when a search page cannot be fetched."""


@dataclass
class AucfanConfig:
    timeout_secs: float = float(os.environ.get("AUCFAN_TIMEOUT_SECS", "15"))
    user_agent: str = os.environ.get("HTTP_USER_AGENT", DEFAULT_USER_AGENT)
    # pause between the similar-product searches
    min_interval_secs: float = float(os.environ.get("AUCFAN_MIN_INTERVAL_SECS", "1.0"))
    pipeline: PipelineConfig = field(default_factory=PipelineConfig.from_env)


def extract_keywords(product_name: str, limit: int = 3) -> List[str]:
    """Derive broader search terms from a product name.

    Brand + category pairs come first, then model-number tokens, then the
    first two meaningful words.
    """
    keywords: List[str] = []
    upper = product_name.upper()
    lower = product_name.lower()
    brand = next((b for b in BRANDS if b.upper() in upper), None)
    category = next((c for c in CATEGORIES if c.lower() in lower), None)
    if brand and category:
        keywords.append(f"{brand} {category}")
    keywords.extend(re.findall(r"[A-Z0-9]{3,}", product_name))
    words = [w for w in re.split(r"[\s\-_+/]+", product_name) if w]
    keywords.extend([w for w in words if len(w) >= 3 and w.lower() not in STOPWORDS][:2])
    seen: List[str] = []
    for kw in keywords:
        if kw not in seen:
            seen.append(kw)
    return seen[:limit]


class AucfanClient:
    """Thin client for aucfan.com sold-price search pages.

    - One GET per query; no retries. Failures raise ``AucfanError``.
    - Parsing and scoring are delegated to ``services.market``.
    """

    def __init__(self, config: AucfanConfig | None = None, session: Optional[requests.Session] = None) -> None:
        self.config = config or AucfanConfig()
        self.session = session or requests.Session()
        self._last_call = 0.0

    def _headers(self) -> dict[str, str]:
        return {
            "User-Agent": self.config.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "ja,en-US;q=0.5,en;q=0.3",
            "Cache-Control": "no-cache",
        }

    def fetch(self, query: str) -> tuple[bytes, Optional[str]]:
        """Return the raw search page for ``query`` and its declared encoding."""
        url = search_url(query, self.config.pipeline.extract)
        logger.info("Fetching %s", url)
        try:
            resp = self.session.get(url, headers=self._headers(), timeout=self.config.timeout_secs)
            self._last_call = time.time()
            resp.raise_for_status()
        except requests.RequestException as e:
            raise AucfanError(f"failed to fetch market prices for {query!r}: {e}") from e
        return resp.content, declared_charset(resp.headers.get("Content-Type"))

    def report(self, query: str) -> MarketReport:
        body, encoding = self.fetch(query)
        return build_market_report(query, body, self.config.pipeline, hint=encoding)

    def search_similar(self, query: str) -> List[SimilarProduct]:
        results: List[SimilarProduct] = []
        for keyword in extract_keywords(query):
            if keyword == query:
                continue
            wait = self.config.min_interval_secs - (time.time() - self._last_call)
            if wait > 0:
                time.sleep(wait)
            try:
                rep = self.report(keyword)
            except AucfanError as e:
                logger.warning("Similar search for %r failed: %s", keyword, e)
                continue
            if rep.count > 0:
                results.append(SimilarProduct(query=keyword, count=rep.count, avg_price=rep.avg_price))
        return results

    def analyze(self, query: str, acquisition_price: Optional[int] = None, similar: bool = True) -> MarketAnalysis:
        rep = self.report(query)
        evaluation = None
        if acquisition_price is not None:
            evaluation = evaluate_purchase(rep, acquisition_price, self.config.pipeline)
        similar_products: List[SimilarProduct] = []
        if similar and rep.count < self.config.pipeline.evaluation.similar_min_count:
            logger.info("Only %d listings for %r; searching similar products", rep.count, query)
            similar_products = self.search_similar(query)
        return MarketAnalysis(report=rep, evaluation=evaluation, similar=similar_products)
