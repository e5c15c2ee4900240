"""
tinvest

Tinkoff Invest OpenAPI 비동기 클라이언트.
REST 엔드포인트 호출과 WebSocket 타입 이벤트 스트림 제공.
"""

from tinvest.adapters.errors import (
    EncodingError,
    GeneralError,
    HandshakeError,
    InvestError,
    ServiceError,
    StreamTransportError,
    TransportError,
)
from tinvest.adapters.models import Response
from tinvest.adapters.tinkoff import EventSink, EventSource, TinkoffInvestClient

__all__ = [
    "TinkoffInvestClient",
    "EventSink",
    "EventSource",
    "Response",
    "InvestError",
    "ServiceError",
    "TransportError",
    "HandshakeError",
    "StreamTransportError",
    "EncodingError",
    "GeneralError",
]
