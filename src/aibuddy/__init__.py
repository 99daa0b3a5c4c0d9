"""AIBuddy - proactive desktop buddies with intent routing and duplicate-free notifications."""

__version__ = "0.1.0"
