"""
Tinkoff Streaming WebSocket 채널

websockets의 sans-I/O ClientProtocol을 asyncio 스트림 위에서 직접 구동.
고수준 클라이언트와 달리 PING / PONG / CLOSE 제어 프레임을 호출자에게
그대로 노출하기 위함. IFrameChannel Protocol 준수.
"""

import asyncio
import logging
import ssl
from collections import deque

from websockets.client import ClientProtocol
from websockets.exceptions import InvalidURI, ProtocolError
from websockets.frames import Close, CloseCode, Frame, Opcode
from websockets.http11 import Request, Response
from websockets.protocol import State
from websockets.uri import parse_uri

from tinvest.adapters.errors import HandshakeError, StreamTransportError
from tinvest.core.constants import Defaults

logger = logging.getLogger(__name__)


class WebSocketChannel:
    """WebSocket 프레임 채널

    프로토콜이 요구하는 응답(ping에 대한 pong, close 응답)은
    ClientProtocol 상태 머신이 자동으로 송신함.

    Args:
        protocol: 핸드셰이크가 끝난(OPEN) ClientProtocol
        reader: asyncio 스트림 reader
        writer: asyncio 스트림 writer
        pending: 핸드셰이크 응답과 함께 이미 수신된 프레임
    """

    READ_SIZE = Defaults.WS_READ_SIZE

    def __init__(
        self,
        protocol: ClientProtocol,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        pending: list[Frame] | None = None,
    ):
        self._protocol = protocol
        self._reader = reader
        self._writer = writer
        self._pending: deque[Frame] = deque(pending or [])

        # fragment 조립 버퍼 (TEXT/BINARY + CONT)
        self._fragment_opcode: Opcode | None = None
        self._fragments: list[bytes] = []

        self._write_lock = asyncio.Lock()
        self._closed = False

    @property
    def state(self) -> State:
        """프로토콜 상태 (CONNECTING / OPEN / CLOSING / CLOSED)"""
        return self._protocol.state

    # -------------------------------------------------------------------------
    # 송신
    # -------------------------------------------------------------------------

    async def send_frame(self, frame: Frame) -> None:
        data = bytes(frame.data)
        if frame.opcode is Opcode.TEXT:
            self._protocol.send_text(data)
        elif frame.opcode is Opcode.BINARY:
            self._protocol.send_binary(data)
        elif frame.opcode is Opcode.PING:
            self._protocol.send_ping(data)
        elif frame.opcode is Opcode.PONG:
            self._protocol.send_pong(data)
        elif frame.opcode is Opcode.CLOSE:
            close = Close.parse(data)
            self._protocol.send_close(close.code, close.reason)
        else:
            raise ValueError(f"unsupported opcode: {frame.opcode}")

        await self._flush()

    async def _flush(self) -> None:
        """프로토콜이 쌓아둔 송신 데이터를 소켓으로 기록"""
        async with self._write_lock:
            for chunk in self._protocol.data_to_send():
                if chunk:
                    self._writer.write(chunk)
                elif self._writer.can_write_eof():
                    # 빈 청크는 half-close 신호
                    self._writer.write_eof()
            await self._writer.drain()

    # -------------------------------------------------------------------------
    # 수신
    # -------------------------------------------------------------------------

    async def recv_frame(self) -> Frame:
        while True:
            while self._pending:
                message = self._assemble(self._pending.popleft())
                if message is not None:
                    return message

            if self._protocol.state is State.CLOSED:
                raise self._protocol.close_exc

            data = await self._reader.read(self.READ_SIZE)
            if data:
                self._protocol.receive_data(data)
            else:
                self._protocol.receive_eof()

            for event in self._protocol.events_received():
                if isinstance(event, Frame):
                    self._pending.append(event)

            # 자동 pong / close 응답 송신
            # 실패해도 이미 수신한 프레임은 먼저 전달 (다음 read에서 연결 종료가 드러남)
            try:
                await self._flush()
            except OSError as e:
                logger.debug("제어 프레임 응답 송신 실패", extra={"error": str(e)})

    def _assemble(self, frame: Frame) -> Frame | None:
        """fragment 조립

        제어 프레임은 조립 중에도 바로 반환.
        완성되지 않은 데이터 메시지는 None.
        """
        if frame.opcode in (Opcode.TEXT, Opcode.BINARY):
            if frame.fin:
                return Frame(frame.opcode, bytes(frame.data))
            self._fragment_opcode = frame.opcode
            self._fragments = [bytes(frame.data)]
            return None

        if frame.opcode is Opcode.CONT:
            if self._fragment_opcode is None:
                raise ProtocolError("unexpected continuation frame")
            self._fragments.append(bytes(frame.data))
            if not frame.fin:
                return None
            message = Frame(self._fragment_opcode, b"".join(self._fragments))
            self._fragment_opcode = None
            self._fragments = []
            return message

        return Frame(frame.opcode, bytes(frame.data))

    # -------------------------------------------------------------------------
    # 종료
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        try:
            if self._protocol.state is State.OPEN:
                self._protocol.send_close(CloseCode.NORMAL_CLOSURE)
                await self._flush()
        except OSError as e:
            logger.debug("close 프레임 송신 실패", extra={"error": str(e)})
        finally:
            self._writer.close()
            try:
                await self._writer.wait_closed()
            except OSError as e:
                logger.debug("소켓 종료 중 에러", extra={"error": str(e)})

        logger.info("WebSocket 채널 종료")


async def connect_channel(
    uri: str,
    token: str,
    open_timeout: float = Defaults.WS_OPEN_TIMEOUT,
) -> WebSocketChannel:
    """WebSocket 연결 및 업그레이드 핸드셰이크

    Args:
        uri: ws:// 또는 wss:// 엔드포인트
        token: Bearer 토큰 (Authorization 헤더로 전송)
        open_timeout: TCP 연결 + 핸드셰이크 타임아웃 (초)

    Returns:
        OPEN 상태의 WebSocketChannel

    Raises:
        HandshakeError: URI 또는 헤더가 잘못되어 요청을 만들 수 없음
        StreamTransportError: 연결 실패, 업그레이드 거부, 타임아웃
    """
    try:
        wsuri = parse_uri(uri)
    except (InvalidURI, ValueError) as e:
        # 숫자가 아니거나 범위를 벗어난 포트는 ValueError
        raise HandshakeError("Invalid WebSocket URI", cause=e) from e

    authorization = f"Bearer {token}"
    if any(ch in authorization for ch in "\r\n\0"):
        raise HandshakeError(
            "Invalid Authorization header",
            cause=ValueError("token contains forbidden characters"),
        )

    protocol = ClientProtocol(wsuri)
    request = protocol.connect()
    request.headers["Authorization"] = authorization

    try:
        return await asyncio.wait_for(
            _open(protocol, request, wsuri.host, wsuri.port, wsuri.secure),
            timeout=open_timeout,
        )
    except asyncio.TimeoutError as e:
        logger.error("WebSocket 연결 타임아웃", extra={"uri": uri, "timeout": open_timeout})
        raise StreamTransportError("WebSocket handshake timed out", cause=e) from e
    except OSError as e:
        logger.error("WebSocket 연결 실패", extra={"uri": uri, "error": str(e)})
        raise StreamTransportError("WebSocket connection failed", cause=e) from e


async def _open(
    protocol: ClientProtocol,
    request: Request,
    host: str,
    port: int,
    secure: bool,
) -> WebSocketChannel:
    """TCP/TLS 연결 후 업그레이드 요청 송신, 응답 대기"""
    ssl_context = ssl.create_default_context() if secure else None
    reader, writer = await asyncio.open_connection(
        host,
        port,
        ssl=ssl_context,
        server_hostname=host if secure else None,
    )

    protocol.send_request(request)
    pending: list[Frame] = []

    try:
        for chunk in protocol.data_to_send():
            writer.write(chunk)
        await writer.drain()

        while protocol.state is State.CONNECTING and protocol.handshake_exc is None:
            data = await reader.read(Defaults.WS_READ_SIZE)
            if data:
                protocol.receive_data(data)
            else:
                protocol.receive_eof()

            for event in protocol.events_received():
                if isinstance(event, Frame):
                    pending.append(event)
                elif isinstance(event, Response):
                    logger.debug(
                        "핸드셰이크 응답 수신",
                        extra={"status": event.status_code},
                    )

        # 101 응답과 같이 도착한 ping/close에 대한 자동 응답
        for chunk in protocol.data_to_send():
            if chunk:
                writer.write(chunk)
            elif writer.can_write_eof():
                writer.write_eof()
        await writer.drain()
    except BaseException:
        writer.close()
        raise

    if protocol.handshake_exc is not None:
        writer.close()
        logger.error(
            "WebSocket 핸드셰이크 실패",
            extra={"error": str(protocol.handshake_exc)},
        )
        raise StreamTransportError(
            "WebSocket handshake failed",
            cause=protocol.handshake_exc,
        ) from protocol.handshake_exc

    logger.info("WebSocket 연결 성공", extra={"host": host, "port": port})
    return WebSocketChannel(protocol, reader, writer, pending)
