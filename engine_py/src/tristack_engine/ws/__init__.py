"""
WebSocket server and event handling for Tri-Stack.
"""

from .events import *
from .server import hub, router

__all__ = ["hub", "router"]
