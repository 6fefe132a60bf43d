"""
Composite ranking of candidate venues.

Responsibilities:
- Drop venues without enough reviews to be trustworthy.
- Score each venue as rating x log10(1 + review count).
- Return a stable, deterministic top-N list with human-readable explanations.
"""
