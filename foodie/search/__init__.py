"""
Web search used to ground generated restaurant answers.

Responsibilities:
- Query Serper.dev for organic web results.
- Build focused queries for community discussions, menus, pricing and comparisons.
- Filter and de-duplicate results before they are handed to the LLM as sources.
"""
