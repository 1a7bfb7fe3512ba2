from __future__ import annotations

from scrapy.logformatter import LogFormatter


class NoItemLogFormatter(LogFormatter):
    """Scrapy LogFormatter that logs a one-line summary instead of the full item.

    A ``MarketAnalysis`` carries up to a hundred listings; dumping it on every
    "Scraped from" line buries the useful output.
    """

    def scraped(self, item, response, spider):  # type: ignore[override]
        data = super().scraped(item, response, spider)
        report = item.get("report") if isinstance(item, dict) else None
        if isinstance(report, dict):
            data["msg"] = "Scraped %(query)s from %(src)s: %(count)s listings, avg %(avg)s"
            data["args"] = {
                "query": report.get("query"),
                "src": response,
                "count": report.get("count"),
                "avg": report.get("avg_price"),
            }
        else:
            data["msg"] = "Scraped from %(src)s"
            data["args"] = {"src": response}
        return data
