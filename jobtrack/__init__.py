"""
jobtrack - AI helpers for the job-search tracker.

Turns free-form text from a local Ollama model into validated,
strongly-shaped results for the tracker's request handlers.
"""

__version__ = "0.1.0"
