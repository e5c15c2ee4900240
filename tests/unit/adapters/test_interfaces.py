"""
Protocol 인터페이스 테스트

IFrameChannel Protocol 타입 검증 및 구현 확인.
"""

from tinvest.adapters.interfaces import IFrameChannel
from tinvest.adapters.mock.frame_channel import MockFrameChannel
from tinvest.adapters.tinkoff.ws_client import WebSocketChannel


class TestIFrameChannel:
    """IFrameChannel Protocol 테스트"""

    def test_mock_channel_implements_protocol(self) -> None:
        """Mock 채널이 Protocol을 구현하는지 확인"""
        assert isinstance(MockFrameChannel(), IFrameChannel)

    def test_websocket_channel_has_required_methods(self) -> None:
        """WebSocketChannel에 필수 메서드가 정의되어 있는지 확인"""
        for method_name in ["send_frame", "recv_frame", "close"]:
            assert callable(getattr(WebSocketChannel, method_name)), (
                f"Missing method: {method_name}"
            )

    def test_plain_object_is_not_channel(self) -> None:
        assert not isinstance(object(), IFrameChannel)
