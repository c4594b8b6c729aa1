"""
POSETRACK WebSocket Module
"""

from .manager import (
    StreamManager,
    stream_manager,
    WebSocketMessage,
    MessageType,
    ConnectedClient
)

__all__ = [
    'StreamManager',
    'stream_manager',
    'WebSocketMessage',
    'MessageType',
    'ConnectedClient'
]
