"""
Core module for HAL

Contains the handler registry and dispatcher, configuration management,
logging, persistence and the server transport.
"""

from .dispatcher import Dispatcher, Handler, HandlerRegistry, OutboundQueue

__all__ = [
    'Dispatcher',
    'Handler',
    'HandlerRegistry',
    'OutboundQueue'
]
