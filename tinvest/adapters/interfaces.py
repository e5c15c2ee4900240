"""
어댑터 인터페이스 정의

Protocol 기반으로 정의하여 의존성 주입 및 Mock 교체 가능.
모든 구현체는 이 Protocol을 준수해야 함.
"""

from typing import Protocol, runtime_checkable

from websockets.frames import Frame


@runtime_checkable
class IFrameChannel(Protocol):
    """프레임 단위 양방향(duplex) 채널 인터페이스

    TEXT / BINARY / PING / PONG / CLOSE 프레임을 그대로 주고받음.
    타입이 있는 이벤트 스트림(EventSink / EventSource)은 이 위에서 동작.

    송신과 수신은 서로 독립적으로 동시에 사용 가능하지만
    각 방향은 동시에 하나의 호출자만 사용해야 함.
    """

    async def send_frame(self, frame: Frame) -> None:
        """프레임 송신 (전송 계층이 받아들일 때까지 대기)

        Raises:
            websockets.exceptions.WebSocketException: 채널이 닫혔거나 송신 불가
            OSError: 소켓 쓰기 실패
        """
        ...

    async def recv_frame(self) -> Frame:
        """다음 프레임 수신 (도착할 때까지 대기)

        fragment로 나뉜 TEXT/BINARY 메시지는 하나의 프레임으로 합쳐서 반환.

        Raises:
            websockets.exceptions.ConnectionClosed: close 프레임 없이 연결 종료
            OSError: 소켓 읽기 실패
        """
        ...

    async def close(self) -> None:
        """채널 종료 (여러 번 호출해도 안전)"""
        ...
