from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from souba_agent.config import PipelineConfig
from souba_agent.models import MarketAnalysis
from souba_agent.services.aucfan import AucfanClient, AucfanConfig, AucfanError
from souba_agent.services.market import build_market_report, evaluate_purchase


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Look up sold prices and judge a purchase")
    parser.add_argument("query", help="Product name or model number")
    parser.add_argument("--price", type=int, help="Acquisition (auction) price in yen")
    parser.add_argument("--file", type=Path, help="Parse a saved search page instead of fetching")
    parser.add_argument("--no-similar", action="store_true", help="Skip the similar-product search")
    parser.add_argument("--iqr-multiplier", type=float, help="Outlier rejection multiplier (default 1.5)")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.price is not None and args.price <= 0:
        parser.error("--price must be a positive integer")

    cfg = PipelineConfig.from_env()
    if args.iqr_multiplier is not None:
        cfg.filters.iqr_multiplier = args.iqr_multiplier

    query = args.query.strip()
    if args.file:
        report = build_market_report(query, args.file.read_bytes(), cfg)
        evaluation = evaluate_purchase(report, args.price, cfg) if args.price is not None else None
        analysis = MarketAnalysis(report=report, evaluation=evaluation)
    else:
        client = AucfanClient(AucfanConfig(pipeline=cfg))
        try:
            analysis = client.analyze(query, args.price, similar=not args.no_similar)
        except AucfanError as e:
            print(f"error: {e}", file=sys.stderr)
            return 1

    print(analysis.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
