"""
spectap Replay Module

Serves recorded sessions back in order, matched by method and URL.
"""

from .replayer import ReplayEngine, ReplayServer

__all__ = [
    'ReplayEngine',
    'ReplayServer',
]
