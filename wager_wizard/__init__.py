"""Wager Wizard: a streaming sports-betting assistant with live odds lookup."""

__version__ = "0.1.0"
