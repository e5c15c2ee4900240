"""
Mock 프레임 채널

IFrameChannel Protocol 구현.
네트워크 없이 테스트/오프라인 환경에서 스트림 레이어를 구동.
"""

import asyncio

from websockets.exceptions import ConnectionClosedOK
from websockets.frames import Close, CloseCode, Frame, Opcode


class MockFrameChannel:
    """Mock 프레임 채널

    테스트용 수신 프레임/에러 주입과 송신 프레임 기록 지원.

    사용 예시:
    ```python
    channel = MockFrameChannel()
    channel.inject_text('{"event": "candle", ...}')
    channel.inject_close()

    sink, source = open_event_stream(channel)
    ```
    """

    def __init__(self) -> None:
        self.sent_frames: list[Frame] = []
        self.close_calls = 0
        self.send_error: BaseException | None = None

        # 주입된 수신 프레임 큐 (예외를 넣으면 recv_frame에서 발생)
        self._incoming: asyncio.Queue[Frame | BaseException] = asyncio.Queue()

    @property
    def closed(self) -> bool:
        """close() 호출 여부"""
        return self.close_calls > 0

    @property
    def sent_texts(self) -> list[str]:
        """송신된 TEXT 프레임 본문 목록"""
        return [
            frame.data.decode("utf-8")
            for frame in self.sent_frames
            if frame.opcode is Opcode.TEXT
        ]

    async def send_frame(self, frame: Frame) -> None:
        if self.closed:
            raise ConnectionClosedOK(None, None)
        if self.send_error is not None:
            raise self.send_error
        self.sent_frames.append(frame)

    async def recv_frame(self) -> Frame:
        item = await self._incoming.get()
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> None:
        self.close_calls += 1

    # -------------------------------------------------------------------------
    # 주입
    # -------------------------------------------------------------------------

    def inject_frame(self, frame: Frame) -> None:
        """수신 프레임 주입"""
        self._incoming.put_nowait(frame)

    def inject_text(self, text: str) -> None:
        """TEXT 프레임 주입"""
        self.inject_frame(Frame(Opcode.TEXT, text.encode("utf-8")))

    def inject_close(self, code: int = CloseCode.NORMAL_CLOSURE, reason: str = "") -> None:
        """CLOSE 프레임 주입"""
        self.inject_frame(Frame(Opcode.CLOSE, Close(code, reason).serialize()))

    def inject_error(self, error: BaseException) -> None:
        """전송 계층 에러 주입 (다음 recv_frame에서 발생)"""
        self._incoming.put_nowait(error)
