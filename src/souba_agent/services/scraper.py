"""Sold-listing extraction built on Scrapy selectors."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, List, Optional, Sequence
from urllib.parse import quote, urljoin
import logging
import re

import scrapy
from scrapy import Request, Selector
from scrapy.http import Response

from souba_agent.config import ExtractConfig, PipelineConfig
from souba_agent.models import MarketAnalysis, Platform, RawListing
from souba_agent.services.classifier import PlatformClassifier
from souba_agent.services.encoding import declared_charset
from souba_agent.filters.engine import ad_keyword_hit
from souba_agent.services.normalize import find_date_text, months_ago, normalize_price, z2h_digits

logger = logging.getLogger(__name__)

CURRENCY_MARKERS = ("円", "¥", "￥")
_PRICE_RE = re.compile(
    r"[¥￥]\s*(?:\d{1,3}(?:[,，]\d{3})+|\d+)|(?:\d{1,3}(?:[,，]\d{3})+|\d+)\s*円"
)
_YEN_SUFFIX_RE = re.compile(r"(?:\d{1,3}(?:[,，]\d{3})+|\d+)\s*円")
_SPLIT_RE = re.compile(r"[\n\r]+|\s{2,}|[|｜\t]+")
_BARE_PRICE_RE = re.compile(r"^\d+[円,]")
_BARE_DATE_RE = re.compile(r"^\d{4}[-/]")
_BARE_PLATFORM_RE = re.compile(r"^(メルカリ|ヤフオク|Yahoo)$")
# A bare amount at the start of marker-less price text, e.g. "32,000 (税10%)"
_LEADING_AMOUNT_RE = re.compile(r"\s*(\d{1,3}(?:[,，]\d{3})+|\d+)(?![\d%.])")


@dataclass
class ExtractContext:
    config: ExtractConfig
    ad_keywords: Sequence[str] = ()
    classifier: PlatformClassifier = field(default_factory=PlatformClassifier)


Strategy = Callable[[Selector, ExtractContext], List[RawListing]]


def search_url(query: str, config: Optional[ExtractConfig] = None) -> str:
    cfg = config or ExtractConfig()
    return cfg.search_url_template.format(query=quote(query.strip(), safe=""))


def _texts(sel: Selector) -> list[str]:
    return [t.strip() for t in sel.xpath(".//text()").getall() if t and t.strip()]


def _text(sel: Optional[Selector], sep: str = " ") -> str:
    if sel is None:
        return ""
    return sep.join(_texts(sel))


def _first(sel: Selector, query: str) -> Optional[Selector]:
    found = sel.css(query)
    return found[0] if found else None


def _parent(sel: Selector) -> Optional[Selector]:
    found = sel.xpath("..")
    return found[0] if found else None


def _ancestry(sel: Selector, depth: int) -> List[Selector]:
    """``sel`` followed by up to ``depth - 1`` of its ancestors."""
    chain = [sel]
    while len(chain) < depth:
        parent = _parent(chain[-1])
        if parent is None:
            break
        chain.append(parent)
    return chain


def first_price_text(text: str, cfg: ExtractConfig, pattern: re.Pattern[str] = _PRICE_RE) -> str:
    """Return the first currency-marked amount within the plausible range."""
    for m in pattern.finditer(text or ""):
        price = normalize_price(m.group(0))
        if cfg.extract_min_price < price < cfg.extract_max_price:
            return m.group(0).strip()
    return ""


def _is_title_fragment(part: str, cfg: ExtractConfig) -> bool:
    if not cfg.text_title_min_length < len(part) < cfg.text_title_max_length:
        return False
    if _BARE_PRICE_RE.match(part) or _BARE_DATE_RE.match(part) or _BARE_PLATFORM_RE.match(part):
        return False
    # "メルカリ 82,000円" is a price label, not a title
    if _YEN_SUFFIX_RE.search(part) and len(_YEN_SUFFIX_RE.sub("", part).strip()) <= cfg.text_title_min_length:
        return False
    return not any(n in part for n in cfg.title_noise)


def _title_from_text(text: str, cfg: ExtractConfig) -> str:
    for part in _SPLIT_RE.split(text or ""):
        part = part.strip()
        if _is_title_fragment(part, cfg):
            return part
    return ""


def _link_title(sel: Selector, cfg: ExtractConfig) -> str:
    text = _text(_first(sel, "a"))
    if cfg.text_title_min_length < len(text) < cfg.text_title_max_length:
        return text
    return ""


def _absolute(href: Optional[str], cfg: ExtractConfig) -> str:
    if not href or href.startswith(("javascript:", "#")):
        return ""
    return urljoin(cfg.base_url, href.strip())


def _make_listing(
    ctx: ExtractContext,
    title: str,
    price_text: str,
    date_text: str,
    href: Optional[str],
    platform: Platform,
) -> Optional[RawListing]:
    title = (title or "").strip()
    if len(title) < ctx.config.min_title_length or normalize_price(price_text) <= 0:
        return None
    return RawListing(
        title=title,
        price_text=price_text,
        date_text=date_text,
        url=_absolute(href, ctx.config),
        platform=platform,
    )


# ---------------------------------------------------------------------------
# Strategy 1: structured selectors


def _structured_title(node: Selector, cfg: ExtractConfig) -> str:
    if node.xpath("name()").get() == "tr":
        for cell in node.css("td"):
            link = _text(_first(cell, "a"))
            if cfg.text_title_min_length < len(link) < cfg.text_title_max_length:
                return link
            cell_text = _text(cell)
            if _is_title_fragment(cell_text, cfg):
                return cell_text
    for query in cfg.title_selectors:
        text = _text(_first(node, query))
        if cfg.min_title_length <= len(text) < cfg.text_title_max_length:
            return text
    return _title_from_text(_text(node, "\n"), cfg)


def _structured_price(node: Selector, cfg: ExtractConfig) -> str:
    for query in cfg.price_selectors:
        text = _text(_first(node, query))
        if not text:
            continue
        found = first_price_text(text, cfg)
        if found:
            return found
        m = _LEADING_AMOUNT_RE.match(z2h_digits(text))
        if m and cfg.extract_min_price < normalize_price(m.group(1)) < cfg.extract_max_price:
            return m.group(1)
    return first_price_text(_text(node), cfg)


def _structured_date(node: Selector, cfg: ExtractConfig) -> str:
    stamp = node.css("time::attr(datetime)").get()
    if stamp and months_ago(stamp) is not None:
        return stamp.strip()
    for query in cfg.date_selectors:
        text = _text(_first(node, query))
        if text and months_ago(text) is not None:
            return text
    return find_date_text(_text(node))


def structured_pass(doc: Selector, ctx: ExtractContext) -> List[RawListing]:
    cfg = ctx.config
    for query in cfg.item_selectors:
        nodes = doc.css(query)
        if not nodes:
            continue
        results: List[RawListing] = []
        for node in nodes:
            if len(results) >= cfg.max_listings:
                break
            node_text = _text(node)
            if ctx.classifier.is_sub_brand(node_text):
                continue
            if not any(m in node_text for m in CURRENCY_MARKERS):
                continue
            item = _make_listing(
                ctx,
                title=_structured_title(node, cfg),
                price_text=_structured_price(node, cfg),
                date_text=_structured_date(node, cfg),
                href=node.css("a::attr(href)").get(),
                platform=ctx.classifier.classify(node_text),
            )
            if item is not None:
                results.append(item)
        logger.debug("Selector %r: %d nodes, %d listings", query, len(nodes), len(results))
        if results:
            return results
    return []


# ---------------------------------------------------------------------------
# Strategy 2: nodes scoped to a marketplace name


def _marker_condition(markers: Iterable[str]) -> str:
    platform = " or ".join(f'contains(., "{m}")' for m in markers)
    return f'({platform}) and contains(., "円")'


def platform_pass(doc: Selector, ctx: ExtractContext) -> List[RawListing]:
    cfg = ctx.config
    cond = _marker_condition(ctx.classifier.markers)
    nodes = doc.xpath(
        f"//body//*[not(self::script or self::style)][{cond}][not(.//*[{cond}])]"
    )
    results: List[RawListing] = []
    for node in nodes:
        if len(results) >= cfg.max_listings:
            break
        node_text = _text(node)
        platform = ctx.classifier.classify(node_text)
        if platform is Platform.UNKNOWN:
            continue
        price_text = first_price_text(node_text, cfg, _YEN_SUFFIX_RE)
        if not price_text:
            continue
        chain = _ancestry(node, cfg.ancestry_depth)
        title, href = "", None
        for scope in chain:
            title = _link_title(scope, cfg)
            if title:
                href = scope.css("a::attr(href)").get()
                break
        if not title:
            title = next((t for t in (_title_from_text(_text(s, "\n"), cfg) for s in chain) if t), "")
        if href is None:
            href = next((h for h in (s.css("a::attr(href)").get() for s in chain) if h), None)
        date_text = next((d for d in (find_date_text(_text(s)) for s in chain) if d), "")
        item = _make_listing(ctx, title, price_text, date_text, href, platform)
        if item is not None:
            results.append(item)
    logger.debug("Platform-scoped pass: %d nodes, %d listings", len(nodes), len(results))
    return results


# ---------------------------------------------------------------------------
# Strategy 3: every text node carrying a yen amount


def fulltext_pass(doc: Selector, ctx: ExtractContext) -> List[RawListing]:
    cfg = ctx.config
    nodes = doc.xpath(
        '//body//*[not(self::script or self::style or self::noscript)][text()[contains(., "円")]]'
    )
    results: List[RawListing] = []
    for node in nodes:
        if len(results) >= cfg.max_listings:
            break
        own = " ".join(t.strip() for t in node.xpath("text()").getall() if t.strip())
        price_text = first_price_text(own, cfg, _YEN_SUFFIX_RE)
        if not price_text:
            continue
        window = _parent(node)
        if window is None:
            window = node
        window_text = _text(window, "\n")
        link = node.xpath("ancestor-or-self::a[1]")
        title = ""
        if link:
            title = _text(link[0])
            if not cfg.text_title_min_length < len(title) < cfg.text_title_max_length:
                title = ""
        if not title:
            title = _title_from_text(window_text, cfg)
        if not title:
            flat = " ".join(window_text.split())
            if cfg.flat_title_min_length < len(flat) < cfg.flat_title_max_length:
                title = flat
        if not title or ad_keyword_hit(title, ctx.ad_keywords):
            continue
        href = link.xpath("@href").get() if link else window.css("a::attr(href)").get()
        platform = ctx.classifier.classify(window_text)
        item = _make_listing(ctx, title, price_text, find_date_text(window_text), href, platform)
        if item is not None:
            results.append(item)
    logger.debug("Full-text pass: %d nodes, %d listings", len(nodes), len(results))
    return results


STRATEGIES: Sequence[Strategy] = (structured_pass, platform_pass, fulltext_pass)


def extract_listings(
    document: str,
    query: str = "",
    config: Optional[PipelineConfig] = None,
    strategies: Sequence[Strategy] = STRATEGIES,
) -> List[RawListing]:
    """Run the extraction strategies in order; the first non-empty result wins.

    Never raises: a page that cannot be parsed yields an empty list.
    """
    cfg = config or PipelineConfig()
    if not document:
        return []
    if any(marker in document for marker in cfg.extract.no_result_markers):
        logger.info("No search results for %r", query)
        return []
    try:
        doc = Selector(text=document)
    except Exception as e:
        logger.warning("Could not parse document for %r: %s", query, e)
        return []
    ctx = ExtractContext(config=cfg.extract, ad_keywords=cfg.filters.ad_keywords)
    for strategy in strategies:
        try:
            found = strategy(doc, ctx)
        except Exception:
            logger.exception("Extraction strategy %s failed", strategy.__name__)
            continue
        if found:
            logger.info("%s extracted %d listings for %r", strategy.__name__, len(found), query)
            return found
    logger.info("No listings extracted for %r", query)
    return []


class MarketSpider(scrapy.Spider):
    """Fetch search pages and emit one ``MarketAnalysis`` per query."""

    name = "market"
    custom_settings = {
        "DOWNLOAD_DELAY": 1.0,
        "LOG_LEVEL": "INFO",
        "LOG_FORMATTER": "souba_agent.utils.log.NoItemLogFormatter",
        "ITEM_PIPELINES": {"souba_agent.utils.pipelines.JsonifyPydantic": 100},
        "DEFAULT_REQUEST_HEADERS": {
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "ja,en-US;q=0.5,en;q=0.3",
        },
    }

    def __init__(
        self,
        query: Optional[Iterable[str] | str] = None,
        acquisition_price: Optional[int | str] = None,
        **kwargs: object,
    ) -> None:
        super().__init__(**kwargs)  # type: ignore[arg-type]
        # Scrapy passes CLI args as strings; several queries may be comma-separated.
        if isinstance(query, str):
            self.queries = [q.strip() for q in query.split(",") if q.strip()]
        else:
            self.queries = [q.strip() for q in (query or []) if q and q.strip()]
        self._acquisition_price: Optional[int] = None
        if acquisition_price is not None:
            try:
                price = int(acquisition_price)
            except (TypeError, ValueError):
                price = 0
            if price > 0:
                self._acquisition_price = price
            else:
                self.logger.warning("Ignoring invalid acquisition_price %r", acquisition_price)
        self.pipeline_config = PipelineConfig.from_env()

    def start_requests(self) -> Iterator[Request]:
        for q in self.queries:
            yield Request(
                search_url(q, self.pipeline_config.extract),
                callback=self.parse,
                cb_kwargs={"query": q},
            )

    def parse(self, response: Response, query: str = "", **kwargs: object) -> Iterator[MarketAnalysis]:
        from souba_agent.services.market import build_market_report, evaluate_purchase

        hint = declared_charset(response.headers.get("Content-Type"))
        report = build_market_report(query, response.body, self.pipeline_config, hint=hint)
        evaluation = None
        if self._acquisition_price is not None:
            evaluation = evaluate_purchase(report, self._acquisition_price, self.pipeline_config)
        self.logger.info("%s: %d listings (avg %d)", query, report.count, report.avg_price)
        yield MarketAnalysis(report=report, evaluation=evaluation)
