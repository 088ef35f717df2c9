"""
Bot players for seats without a human.
"""

from .base import BaseBot, BotAction
from .greedy import GreedyBot, decide

__all__ = ["BaseBot", "BotAction", "GreedyBot", "decide"]
