from souba_agent.config import FilterConfig

from .engine import FilterEngine, FilterResult, ad_keyword_hit, quartiles

__all__ = ["FilterConfig", "FilterEngine", "FilterResult", "ad_keyword_hit", "quartiles"]
