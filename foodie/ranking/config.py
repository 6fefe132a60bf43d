from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class RankingConfig:
    min_review_count: int = int(os.getenv("MIN_REVIEW_COUNT", "50"))
    top_n: int = int(os.getenv("RANKING_TOP_N", "5"))


DEFAULT_RANKING_CONFIG = RankingConfig()
