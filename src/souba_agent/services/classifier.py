from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from souba_agent.models import Platform


# Mercari's storefront product line; these are shop sales, not sold listings.
SUB_BRAND_MARKERS = ("メルカリShops", "メルカリshops", "メルカリSHOPS")


@dataclass(frozen=True)
class PlatformRule:
    platform: Platform
    markers: Tuple[str, ...]
    excludes: Tuple[str, ...] = ()

    def matches(self, text: str) -> bool:
        if not any(m in text for m in self.markers):
            return False
        return not any(x in text for x in self.excludes)


DEFAULT_RULES = (
    PlatformRule(Platform.MERCARI, ("メルカリ",), SUB_BRAND_MARKERS),
    # Yahoo! Shopping shares the brand but sells new goods
    PlatformRule(Platform.YAHOO_AUCTION, ("ヤフオク", "Yahoo"), ("ショッピング", "shopping")),
)


class PlatformClassifier:
    """Tag a chunk of listing text with the marketplace it came from.

    - Rules are checked in order; the first match wins.
    - Text that only mentions an excluded variant stays ``UNKNOWN``.
    """

    def __init__(self, rules: Iterable[PlatformRule] | None = None) -> None:
        self.rules = tuple(rules) if rules is not None else DEFAULT_RULES

    def classify(self, text: Optional[str]) -> Platform:
        t = text or ""
        for rule in self.rules:
            if rule.matches(t):
                return rule.platform
        return Platform.UNKNOWN

    @property
    def markers(self) -> Tuple[str, ...]:
        """Every marketplace label the rules look for, in rule order."""
        return tuple(m for rule in self.rules for m in rule.markers)

    @staticmethod
    def is_sub_brand(text: Optional[str]) -> bool:
        t = text or ""
        return any(m in t for m in SUB_BRAND_MARKERS)


def classify_platform(text: Optional[str]) -> Platform:
    return PlatformClassifier().classify(text)
