from __future__ import annotations


class FoodieError(Exception):
    """Base class for errors raised inside the assistant."""


class ConfigurationError(FoodieError):
    """A required external capability cannot be used at all (e.g. missing credentials)."""


class RetrievalError(FoodieError):
    """An external search or lookup capability failed or timed out."""


class LocationResolutionError(RetrievalError):
    """No coordinate could be produced for a free-text location."""


class GenerationError(RetrievalError):
    """The grounded generation capability could not produce text."""


class ClassificationError(FoodieError):
    """The classification capability returned output that could not be parsed."""
