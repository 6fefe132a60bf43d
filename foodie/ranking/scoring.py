from __future__ import annotations

import math

from ..places.models import PlaceRecord, ScoredPlace, ScoreFactors
from .config import DEFAULT_RANKING_CONFIG, RankingConfig

_PRICE_LEVEL_LABELS = {
    0: "Free",
    1: "Budget-friendly ($)",
    2: "Moderate ($$)",
    3: "Expensive ($$$)",
    4: "Very Expensive ($$$$)",
}


def score_place(place: PlaceRecord, config: RankingConfig = DEFAULT_RANKING_CONFIG) -> float:
    """Composite score: rating x log10(1 + review_count), rounded to 2 places.

    Venues below the minimum review count score 0 so a handful of perfect
    reviews cannot outrank an established venue.
    """
    rating = place.rating or 0.0
    review_count = place.review_count or 0

    if review_count < config.min_review_count:
        return 0.0

    return round(rating * math.log10(1 + review_count), 2)


def _score_factors(place: PlaceRecord) -> ScoreFactors:
    rating = place.rating or 0.0
    review_count = place.review_count or 0

    if rating >= 4.5:
        quality = 2.0
    elif rating >= 4.0:
        quality = 1.0
    else:
        quality = 0.0

    return ScoreFactors(
        rating_score=rating * 2,
        popularity_score=min(math.log10(1 + review_count) * 2, 6.0),
        review_count_score=min(review_count / 100, 4.0),
        quality_score=quality,
    )


def _explain(place: PlaceRecord, factors: ScoreFactors) -> str:
    rating = place.rating or 0.0
    review_count = place.review_count or 0

    reasons: list[str] = []
    if rating >= 4.5:
        reasons.append(f"excellent {rating}★ rating")
    elif rating >= 4.0:
        reasons.append(f"strong {rating}★ rating")
    else:
        reasons.append(f"{rating}★ rating")

    if review_count >= 1000:
        reasons.append(f"high popularity ({review_count:,} reviews)")
    elif review_count >= 500:
        reasons.append(f"good popularity ({review_count} reviews)")
    else:
        reasons.append(f"{review_count} reviews")

    if factors.quality_score > 0:
        reasons.append(f"quality bonus for {rating}+ stars")

    return f"{place.name} scores well because of {', '.join(reasons)}."


def detailed_score(
    place: PlaceRecord,
    config: RankingConfig = DEFAULT_RANKING_CONFIG,
) -> ScoredPlace:
    """Score a venue and attach the informational factor breakdown."""
    factors = _score_factors(place)
    return ScoredPlace(
        place=place,
        score=score_place(place, config),
        factors=factors,
        explanation=_explain(place, factors),
    )


def rank(
    places: list[PlaceRecord],
    config: RankingConfig = DEFAULT_RANKING_CONFIG,
) -> list[ScoredPlace]:
    """Filter, score and order venues, returning at most ``config.top_n``.

    Ties keep their input order (``sorted`` is stable), so the output is
    fully determined by the input list.
    """
    qualifying = [p for p in places if (p.review_count or 0) >= config.min_review_count]
    scored = [detailed_score(p, config) for p in qualifying]
    ordered = sorted(scored, key=lambda s: s.score, reverse=True)
    return ordered[: config.top_n]


def compare_places(
    first: PlaceRecord,
    second: PlaceRecord,
    config: RankingConfig = DEFAULT_RANKING_CONFIG,
) -> str:
    details_first = detailed_score(first, config)
    details_second = detailed_score(second, config)

    if details_first.score > details_second.score:
        winner, loser = details_first, details_second
    else:
        winner, loser = details_second, details_first

    return (
        f"**{winner.place.name}** ranks higher with a score of {winner.score} "
        f"vs {loser.place.name}'s {loser.score}.\n\n"
        f"{details_first.explanation}\n\n"
        f"{details_second.explanation}\n\n"
        "The ranking considers both rating quality and review volume to provide "
        "balanced recommendations."
    )


def explain_ranking(
    ranked: list[ScoredPlace],
    config: RankingConfig = DEFAULT_RANKING_CONFIG,
) -> str:
    if not ranked:
        return (
            "No restaurants found that meet our minimum criteria "
            f"({config.min_review_count}+ reviews)."
        )

    top = ranked[0]
    return (
        "Restaurants are ranked using our composite scoring system: "
        "Rating × log10(1 + Review Count). This balances quality with popularity "
        f"while filtering out places with fewer than {config.min_review_count} reviews.\n\n"
        f"Top recommendation: {top.place.name}\n"
        f"- Rating: {top.place.rating}★\n"
        f"- Reviews: {top.place.review_count:,}\n"
        f"- Score: {top.score}"
    )


def price_level_description(price_level: int | None) -> str:
    return _PRICE_LEVEL_LABELS.get(price_level, "Price not available")
