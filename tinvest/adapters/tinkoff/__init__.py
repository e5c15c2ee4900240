"""
Tinkoff 어댑터

Tinkoff Invest OpenAPI 연동을 담당.
REST API와 WebSocket Streaming 지원.
"""

from tinvest.adapters.tinkoff.rest_client import TinkoffInvestClient
from tinvest.adapters.tinkoff.stream import EventSink, EventSource, open_event_stream
from tinvest.adapters.tinkoff.ws_client import WebSocketChannel, connect_channel

__all__ = [
    "TinkoffInvestClient",
    "EventSink",
    "EventSource",
    "open_event_stream",
    "WebSocketChannel",
    "connect_channel",
]
