"""
Tri-Stack card game engine.

Rules, bots, room store and replication for a three-card shedding game,
plus the FastAPI server in `tristack_engine.main`.
"""

__version__ = "1.0.0"
