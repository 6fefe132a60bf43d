from __future__ import annotations

from collections import Counter
from typing import Any

SEARCH_INTENT = "restaurant_search"


def compute_analytics(events: list[dict[str, Any]]) -> dict[str, Any]:
    turns = [e for e in events if e["type"] == "turn"]
    total = len(turns)

    # Average response time
    times = [t["response_time_ms"] for t in turns if "response_time_ms" in t]
    avg_time = round(sum(times) / len(times), 1) if times else 0.0

    # Intent distribution
    intent_counter: Counter[str] = Counter(t.get("intent") or "unknown" for t in turns)

    searches = [t for t in turns if t.get("intent") == SEARCH_INTENT]

    # Top locations
    loc_counter: Counter[str] = Counter()
    for s in searches:
        loc_counter[s.get("location") or "unknown"] += 1
    top_locations = [{"name": n, "count": c} for n, c in loc_counter.most_common(10)]

    # Top cuisines
    cuisine_counter: Counter[str] = Counter()
    for s in searches:
        if s.get("cuisine"):
            cuisine_counter[s["cuisine"].lower()] += 1
    top_cuisines = [{"name": n, "count": c} for n, c in cuisine_counter.most_common(10)]

    # Context resolution
    with_context = sum(1 for t in turns if t.get("has_context"))
    failures = sum(1 for t in turns if t.get("failed"))

    return {
        "total_turns": total,
        "avg_response_time_ms": avg_time,
        "intent_distribution": dict(intent_counter),
        "total_searches": len(searches),
        "empty_searches": sum(1 for s in searches if not s.get("results_count")),
        "top_locations": top_locations,
        "top_cuisines": top_cuisines,
        "context_hit_rate": round(with_context / total * 100, 1) if total else 0.0,
        "failed_turns": failures,
    }
