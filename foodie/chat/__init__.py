"""
Conversation orchestration.

Responsibilities:
- Resolve references to earlier turns ("is it expensive?", "compare the top 2").
- Classify each utterance into one of eight intents and extract slots.
- Dispatch to exactly one handler per turn and thread state across turns.
"""
