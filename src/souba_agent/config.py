"""Tunable parameters for extraction, filtering and purchase evaluation.

The upstream site's markup and the useful thresholds drift over time, so
everything that has been re-tuned in the past lives here with a default
instead of as a literal in the pipeline code.
"""

from __future__ import annotations

import os
from typing import List, Optional

from pydantic import BaseModel, Field


DEFAULT_AD_KEYWORDS = [
    "初月無料",
    "月額",
    "プレミアム",
    "会員",
    "登録",
    "2200円",
    "998円",
    "入会",
    "オークファン",
    "aucfan",
    "無料",
    "free",
    "円/税込",
    "プラン",
    "サービス",
    "利用",
    "アップグレード",
    "課金",
    "支払い",
]


class ExtractConfig(BaseModel):
    base_url: str = "https://aucfan.com/"
    search_url_template: str = "https://aucfan.com/search1/q-{query}/"
    max_listings: int = 100
    # Plausible sold-price window (exclusive) for amounts found in free text
    extract_min_price: int = 300
    extract_max_price: int = 10_000_000
    min_title_length: int = 3
    text_title_min_length: int = 10
    text_title_max_length: int = 200
    # Whole-window fallback title used by the full-text pass (exclusive bounds)
    flat_title_min_length: int = 20
    flat_title_max_length: int = 300
    # Node plus ancestors searched for a title around a marketplace label
    ancestry_depth: int = 3
    title_noise: List[str] = ["初月無料", "プレミアム"]
    item_selectors: List[str] = [
        ".aucfan-search-result-list li",
        ".product-item",
        ".search-result",
        ".result-item",
        'li[class*="product"]',
        'div[class*="item"]',
        "table tr",
    ]
    title_selectors: List[str] = [".title", ".product-title", ".item-title", "h3", "h4", "h5", "a"]
    price_selectors: List[str] = [".productPrice", ".price", '[class*="price"]']
    date_selectors: List[str] = [".date", "time", '[class*="date"]']
    no_result_markers: List[str] = ["検索結果が見つかりません", "該当する商品が見つかりません"]


class FilterConfig(BaseModel):
    ad_keywords: List[str] = Field(default_factory=lambda: list(DEFAULT_AD_KEYWORDS))
    min_price: int = 300
    recency_months: Optional[int] = 12
    recent_limit: Optional[int] = None
    sort_by_recency: bool = False
    iqr_multiplier: float = 1.5
    outlier_min_count: int = 3
    outlier_min_survivors: int = 1
    fallback_cap: int = 20


class EvaluationConfig(BaseModel):
    handling_fee_rate: float = 0.05
    tax_rate: float = 0.10
    min_confident_count: int = 3
    # Profit-rate thresholds in percent, checked from the top down
    strongly_recommended_rate: int = 50
    recommended_rate: int = 30
    consider_rate: int = 20
    caution_rate: int = 0
    not_recommended_rate: int = -10
    similar_min_count: int = 5


class PipelineConfig(BaseModel):
    extract: ExtractConfig = Field(default_factory=ExtractConfig)
    filters: FilterConfig = Field(default_factory=FilterConfig)
    evaluation: EvaluationConfig = Field(default_factory=EvaluationConfig)

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Build a config with ``SOUBA_*`` environment overrides applied."""
        cfg = cls()
        env = os.environ
        if env.get("SOUBA_IQR_MULTIPLIER"):
            cfg.filters.iqr_multiplier = float(env["SOUBA_IQR_MULTIPLIER"])
        if env.get("SOUBA_MIN_PRICE"):
            cfg.filters.min_price = int(env["SOUBA_MIN_PRICE"])
        if env.get("SOUBA_RECENCY_MONTHS"):
            cfg.filters.recency_months = int(env["SOUBA_RECENCY_MONTHS"])
        if env.get("SOUBA_RECENT_LIMIT"):
            cfg.filters.recent_limit = int(env["SOUBA_RECENT_LIMIT"])
        if env.get("SOUBA_SORT_BY_RECENCY"):
            cfg.filters.sort_by_recency = env["SOUBA_SORT_BY_RECENCY"] not in ("0", "false", "False", "no", "")
        if env.get("SOUBA_HANDLING_FEE_RATE"):
            cfg.evaluation.handling_fee_rate = float(env["SOUBA_HANDLING_FEE_RATE"])
        if env.get("SOUBA_TAX_RATE"):
            cfg.evaluation.tax_rate = float(env["SOUBA_TAX_RATE"])
        return cfg
