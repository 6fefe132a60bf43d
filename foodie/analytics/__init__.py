"""
In-memory turn analytics.

Responsibilities:
- Record one event per handled chat turn.
- Aggregate intents, searches, locations and context hits for the API.
"""
