"""
Process execution for the xrunner package.

This module provides the asyncio-driven StreamingProcess used to run the
build tool and device log streams while their output is classified live.
"""

from .streaming import StreamingProcess

__all__ = [
    "StreamingProcess",
]
