"""
Conversational restaurant assistant.

Ranks place data with a composite rating/review-volume score and answers
natural-language restaurant questions through a context-aware chat
orchestrator.
"""
