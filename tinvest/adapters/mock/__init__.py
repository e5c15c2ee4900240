"""
Mock 어댑터

테스트 및 오프라인 개발용 Mock 구현체.
"""

from tinvest.adapters.mock.frame_channel import MockFrameChannel

__all__ = ["MockFrameChannel"]
