"""
어댑터 레이어

Tinkoff Invest OpenAPI 연동을 담당.
Protocol 기반 프레임 채널 인터페이스로 Mock 교체 가능.
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
from tinvest.adapters.interfaces import IFrameChannel
from tinvest.adapters.models import Response

__all__ = [
    # Errors
    "InvestError",
    "ServiceError",
    "TransportError",
    "HandshakeError",
    "StreamTransportError",
    "EncodingError",
    "GeneralError",
    # Interfaces
    "IFrameChannel",
    # Models
    "Response",
]
