from __future__ import annotations

from souba_agent.models import Platform
from souba_agent.services.classifier import PlatformClassifier, PlatformRule, classify_platform


def test_mercari_and_yahoo():
    assert classify_platform("メルカリ 9月14日 32,000円") is Platform.MERCARI
    assert classify_platform("ヤフオク! 落札 30,500円") is Platform.YAHOO_AUCTION
    assert classify_platform("Yahoo!オークション") is Platform.YAHOO_AUCTION


def test_lookalikes_stay_unknown():
    assert classify_platform("メルカリShops 新品 29,800円") is Platform.UNKNOWN
    assert classify_platform("Yahoo!ショッピング 送料無料") is Platform.UNKNOWN
    assert classify_platform("ラクマ 12,000円") is Platform.UNKNOWN
    assert classify_platform(None) is Platform.UNKNOWN


def test_markers_and_sub_brand():
    assert PlatformClassifier().markers == ("メルカリ", "ヤフオク", "Yahoo")
    assert PlatformClassifier.is_sub_brand("メルカリSHOPS")
    assert not PlatformClassifier.is_sub_brand("メルカリ")


def test_rules_checked_in_order():
    clf = PlatformClassifier(
        [
            PlatformRule(Platform.YAHOO_AUCTION, ("オク",)),
            PlatformRule(Platform.MERCARI, ("メルカリ",)),
        ]
    )
    assert clf.classify("メルカリ ヤフオク 比較") is Platform.YAHOO_AUCTION
