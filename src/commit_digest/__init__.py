"""Summarize git history and draft release notes with an LLM."""

__version__ = "0.1.0"
