"""
LLM integration layer.

Responsibilities:
- Manage Groq API configuration and credentials.
- Provide schema-constrained JSON classification for intent and context analysis.
- Generate grounded answers from web-search sources, with citations.
- Fail with typed errors so callers can apply their own fallbacks.
"""
