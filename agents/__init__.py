"""Agents that drive a rule interpreter with events."""

from .random_agent import RandomEventAgent, play_random_game

__all__ = ["RandomEventAgent", "play_random_game"]
