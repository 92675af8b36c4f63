"""
Completion engine for RuleKeeper.

This package wraps an OpenAI-compatible chat completion API:

- **llm_engine.py**: Builds the system prompt with the retrieved rule context,
  short-circuits critical mapping hits into decisive answers, and maps API
  failures onto friendly fallback replies.
- **conversation_history.py**: Bounded rolling history per channel/user pair.
"""
