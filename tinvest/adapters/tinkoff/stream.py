"""
타입 이벤트 스트림

프레임 채널(IFrameChannel) 하나를 송신용 EventSink와
수신용 EventSource로 나누어 타입이 있는 양방향 이벤트 스트림으로 변환.

- EventSink: OutcomeEvent → TEXT 프레임 (Ping/Pong은 제어 프레임 그대로)
- EventSource: 프레임 → IncomeEvent, 실패는 항목 단위 에러 값으로 전달

두 half는 채널을 공유하며 둘 다 닫혀야 채널이 한 번만 종료됨.
재연결은 하지 않음 (새 채널로 새 스트림을 만들어야 함).
"""

import asyncio
import logging
from typing import Any, Union

from websockets import frames
from websockets.exceptions import WebSocketException
from websockets.frames import Frame, Opcode

from tinvest.adapters.errors import EncodingError, StreamTransportError
from tinvest.adapters.events import (
    Binary,
    Close,
    IncomeEvent,
    OutcomeEvent,
    Ping,
    Pong,
    decode_income_event,
    encode_outcome_event,
)
from tinvest.adapters.interfaces import IFrameChannel

logger = logging.getLogger(__name__)


# 수신 항목: 이벤트 또는 해당 프레임의 에러
StreamItem = Union[IncomeEvent, EncodingError, StreamTransportError]

# 채널 전송 계층 실패로 취급하는 예외
CHANNEL_ERRORS = (WebSocketException, OSError)


class SharedChannel:
    """두 half가 공유하는 채널 (참조 카운트)

    마지막 참조가 해제될 때 채널을 한 번만 닫음.

    Args:
        channel: 공유할 프레임 채널
        holders: 참조 수 (sink + source = 2)
    """

    def __init__(self, channel: IFrameChannel, holders: int = 2):
        self.channel = channel
        self._holders = holders
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def release(self) -> None:
        """참조 해제 (0이 되면 채널 종료)"""
        if self._holders == 0:
            return
        self._holders -= 1
        if self._holders == 0 and not self._closed:
            self._closed = True
            try:
                await self.channel.close()
            except CHANNEL_ERRORS as e:
                logger.warning("채널 종료 중 에러", extra={"error": str(e)})


class EventSink:
    """송신 half

    send()는 순서대로 하나씩 처리되며 N번째 프레임이 전송(또는 실패)된 뒤에
    N+1번째 프레임을 시도함. 인코딩 실패는 해당 send만 실패시키고
    sink는 계속 사용 가능.
    """

    def __init__(self, shared: SharedChannel):
        self._shared = shared
        self._send_lock = asyncio.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, event: OutcomeEvent) -> None:
        """이벤트 송신

        Args:
            event: subscribe/unsubscribe 명령 또는 Ping/Pong

        Raises:
            EncodingError: JSON 직렬화 실패
            StreamTransportError: sink가 닫혔거나 채널 쓰기 실패
        """
        frame = _to_frame(event)

        async with self._send_lock:
            if self._closed:
                raise StreamTransportError("Event sink is closed")
            try:
                await self._shared.channel.send_frame(frame)
            except CHANNEL_ERRORS as e:
                logger.error(
                    "스트림 프레임 송신 실패",
                    extra={"opcode": frame.opcode.name, "error": str(e)},
                )
                raise StreamTransportError("WebSocket send failed", cause=e) from e

        logger.debug("스트림 프레임 송신", extra={"opcode": frame.opcode.name})

    async def close(self) -> None:
        """sink 종료 (source도 닫혀 있으면 채널 종료)"""
        if self._closed:
            return
        self._closed = True
        await self._shared.release()

    async def __aenter__(self) -> "EventSink":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


class EventSource:
    """수신 half

    `async for item in source` 로 프레임마다 한 항목씩 전달:
    - TEXT → IncomeEvent (파싱 실패 시 EncodingError 값, 스트림은 계속)
    - BINARY → Binary
    - PING / PONG → Ping / Pong (payload 그대로, 자동 응답은 이 레이어에서 하지 않음)
    - CLOSE → Close (마지막 항목)
    - 전송 계층 실패 → StreamTransportError 값 (마지막 항목)

    에러는 raise가 아닌 값으로 전달되므로 하나의 잘못된 프레임이
    async for 루프를 끝내지 않음.
    """

    def __init__(self, shared: SharedChannel):
        self._shared = shared
        self._finished = False
        self._closed = False

    @property
    def finished(self) -> bool:
        """더 이상 항목이 없는지 여부 (Close 또는 전송 에러 이후)"""
        return self._finished or self._closed

    def __aiter__(self) -> "EventSource":
        return self

    async def __anext__(self) -> StreamItem:
        if self.finished:
            raise StopAsyncIteration

        try:
            frame = await self._shared.channel.recv_frame()
        except CHANNEL_ERRORS as e:
            self._finished = True
            logger.error("스트림 수신 실패, 스트림 종료", extra={"error": str(e)})
            return StreamTransportError("WebSocket receive failed", cause=e)

        item = _from_frame(frame)
        if isinstance(item, Close):
            self._finished = True
            logger.info(
                "스트림 close 프레임 수신",
                extra={"code": item.code, "reason": item.reason},
            )
        return item

    async def close(self) -> None:
        """source 종료 (sink도 닫혀 있으면 채널 종료)"""
        if self._closed:
            return
        self._closed = True
        await self._shared.release()

    async def __aenter__(self) -> "EventSource":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


def open_event_stream(channel: IFrameChannel) -> tuple[EventSink, EventSource]:
    """프레임 채널을 sink / source 두 half로 분리

    Args:
        channel: 연결이 완료된 프레임 채널

    Returns:
        (EventSink, EventSource)
    """
    shared = SharedChannel(channel)
    return EventSink(shared), EventSource(shared)


def _to_frame(event: OutcomeEvent) -> Frame:
    """OutcomeEvent → 프레임 (Ping/Pong은 JSON 인코딩하지 않음)"""
    if isinstance(event, Ping):
        return Frame(Opcode.PING, event.data)
    if isinstance(event, Pong):
        return Frame(Opcode.PONG, event.data)
    return Frame(Opcode.TEXT, encode_outcome_event(event).encode("utf-8"))


def _from_frame(frame: Frame) -> IncomeEvent | EncodingError:
    """프레임 → IncomeEvent 또는 EncodingError"""
    data = bytes(frame.data)

    if frame.opcode is Opcode.TEXT:
        try:
            return decode_income_event(data.decode("utf-8"))
        except UnicodeDecodeError as e:
            error = EncodingError("Text frame is not valid UTF-8", cause=e)
        except EncodingError as e:
            error = e
        logger.warning(
            "스트림 메시지 파싱 실패",
            extra={"error": str(error.cause), "frame": data[:100]},
        )
        return error

    if frame.opcode is Opcode.BINARY:
        return Binary(data)
    if frame.opcode is Opcode.PING:
        return Ping(data)
    if frame.opcode is Opcode.PONG:
        return Pong(data)
    if frame.opcode is Opcode.CLOSE:
        try:
            close = frames.Close.parse(data)
        except (WebSocketException, UnicodeDecodeError):
            return Close()
        if close.code == frames.CloseCode.NO_STATUS_RCVD:
            return Close(reason=close.reason)
        return Close(code=int(close.code), reason=close.reason)

    # CONT는 채널에서 조립되므로 여기 도달하지 않음
    return Binary(data)
