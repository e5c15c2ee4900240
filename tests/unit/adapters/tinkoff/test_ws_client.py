"""
Tinkoff WebSocket 채널 테스트

로컬 websockets 서버를 상대로 핸드셰이크, 프레임 송수신,
제어 프레임 노출, close 핸드셰이크 테스트.
"""

import asyncio
from http import HTTPStatus

import pytest
from websockets.asyncio.server import ServerConnection, serve
from websockets.client import ClientProtocol
from websockets.exceptions import ConnectionClosed, ProtocolError
from websockets.frames import Close, CloseCode, Frame, Opcode
from websockets.http11 import Request
from websockets.protocol import State
from websockets.server import ServerProtocol
from websockets.uri import parse_uri

from tinvest.adapters.errors import HandshakeError, StreamTransportError
from tinvest.adapters.tinkoff.ws_client import WebSocketChannel, connect_channel


def server_uri(server) -> str:
    port = server.sockets[0].getsockname()[1]
    return f"ws://127.0.0.1:{port}"


async def echo(ws: ServerConnection) -> None:
    async for message in ws:
        await ws.send(message)


async def start_upgrade_with_frame_server(queue_frame, received: list[Frame], done: asyncio.Event):
    """101 응답과 제어 프레임을 한 번의 write로 보내는 서버

    queue_frame(protocol)이 응답 뒤에 붙일 프레임을 큐에 넣고,
    클라이언트가 보낸 첫 프레임은 received에 기록 후 done 설정.
    """

    async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        protocol = ServerProtocol()
        request = None
        while request is None:
            data = await reader.read(4096)
            if not data:
                writer.close()
                return
            protocol.receive_data(data)
            for event in protocol.events_received():
                if isinstance(event, Request):
                    request = event

        protocol.send_response(protocol.accept(request))
        queue_frame(protocol)
        writer.write(b"".join(protocol.data_to_send()))
        await writer.drain()

        while not done.is_set():
            data = await reader.read(4096)
            if not data:
                break
            protocol.receive_data(data)
            for event in protocol.events_received():
                if isinstance(event, Frame):
                    received.append(event)
                    done.set()
        writer.close()

    return await asyncio.start_server(handle, "127.0.0.1", 0)


class TestConnect:
    """연결 및 핸드셰이크"""

    @pytest.mark.asyncio
    async def test_authorization_header(self) -> None:
        """Bearer 토큰이 Authorization 헤더로 전송됨"""

        async def handler(ws: ServerConnection) -> None:
            await ws.send(ws.request.headers.get("Authorization", ""))
            await ws.wait_closed()

        async with serve(handler, "127.0.0.1", 0) as server:
            channel = await connect_channel(server_uri(server), "secret-token")
            frame = await channel.recv_frame()
            await channel.close()

        assert frame.opcode is Opcode.TEXT
        assert frame.data == b"Bearer secret-token"

    @pytest.mark.asyncio
    async def test_rejected_upgrade(self) -> None:
        """업그레이드 거부는 StreamTransportError"""

        def reject(connection, request):
            return connection.respond(HTTPStatus.UNAUTHORIZED, "Unauthorized\n")

        async with serve(echo, "127.0.0.1", 0, process_request=reject) as server:
            with pytest.raises(StreamTransportError) as exc_info:
                await connect_channel(server_uri(server), "bad-token")

        assert exc_info.value.cause is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "uri",
        [
            "http://127.0.0.1/ws",
            "ws://localhost:abc/ws",
            "ws://localhost:99999/ws",
        ],
    )
    async def test_invalid_uri(self, uri: str) -> None:
        """잘못된 스킴이나 포트는 HandshakeError"""
        with pytest.raises(HandshakeError) as exc_info:
            await connect_channel(uri, "token")

        assert exc_info.value.cause is not None

    @pytest.mark.asyncio
    async def test_invalid_token_header(self) -> None:
        """헤더 값으로 쓸 수 없는 토큰"""
        with pytest.raises(HandshakeError):
            await connect_channel("ws://127.0.0.1:1/ws", "token\r\nX-Injected: 1")

    @pytest.mark.asyncio
    async def test_connection_refused(self) -> None:
        async with serve(echo, "127.0.0.1", 0) as server:
            uri = server_uri(server)

        with pytest.raises(StreamTransportError):
            await connect_channel(uri, "token")

    @pytest.mark.asyncio
    async def test_handshake_timeout(self) -> None:
        """응답 없는 서버는 타임아웃 후 StreamTransportError"""

        async def silent(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
            await reader.read()
            writer.close()

        server = await asyncio.start_server(silent, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        try:
            with pytest.raises(StreamTransportError):
                await connect_channel(f"ws://127.0.0.1:{port}", "token", open_timeout=0.2)
        finally:
            server.close()


class TestFrames:
    """프레임 송수신"""

    @pytest.mark.asyncio
    async def test_echo_text_and_binary(self) -> None:
        async with serve(echo, "127.0.0.1", 0) as server:
            channel = await connect_channel(server_uri(server), "token")

            await channel.send_frame(Frame(Opcode.TEXT, b'{"event":"candle:subscribe"}'))
            text = await channel.recv_frame()
            await channel.send_frame(Frame(Opcode.BINARY, b"\x01\x02"))
            binary = await channel.recv_frame()

            await channel.close()

        assert text.opcode is Opcode.TEXT
        assert text.data == b'{"event":"candle:subscribe"}'
        assert binary.opcode is Opcode.BINARY
        assert binary.data == b"\x01\x02"

    @pytest.mark.asyncio
    async def test_fragmented_message_reassembled(self) -> None:
        async def handler(ws: ServerConnection) -> None:
            await ws.send(["frag1-", "frag2-", "frag3"])
            await ws.wait_closed()

        async with serve(handler, "127.0.0.1", 0) as server:
            channel = await connect_channel(server_uri(server), "token")
            frame = await channel.recv_frame()
            await channel.close()

        assert frame.opcode is Opcode.TEXT
        assert frame.data == b"frag1-frag2-frag3"

    @pytest.mark.asyncio
    async def test_server_ping_visible_and_answered(self) -> None:
        """서버 ping은 호출자에게 노출되고 pong은 자동 응답"""

        async def handler(ws: ServerConnection) -> None:
            pong_waiter = await ws.ping(b"heartbeat")
            await pong_waiter
            await ws.send("pong received")
            await ws.wait_closed()

        async with serve(handler, "127.0.0.1", 0) as server:
            channel = await connect_channel(server_uri(server), "token")
            ping = await channel.recv_frame()
            confirmation = await asyncio.wait_for(channel.recv_frame(), timeout=5)
            await channel.close()

        assert ping.opcode is Opcode.PING
        assert ping.data == b"heartbeat"
        assert confirmation.data == b"pong received"

    @pytest.mark.asyncio
    async def test_client_ping_gets_pong(self) -> None:
        async with serve(echo, "127.0.0.1", 0) as server:
            channel = await connect_channel(server_uri(server), "token")

            await channel.send_frame(Frame(Opcode.PING, b"abc"))
            pong = await asyncio.wait_for(channel.recv_frame(), timeout=5)

            await channel.close()

        assert pong.opcode is Opcode.PONG
        assert pong.data == b"abc"

    @pytest.mark.asyncio
    async def test_ping_with_upgrade_response_answered_on_connect(self) -> None:
        """101 응답과 같이 온 ping은 연결 직후 pong 응답, 호출자에게도 노출"""
        received: list[Frame] = []
        done = asyncio.Event()
        server = await start_upgrade_with_frame_server(
            lambda protocol: protocol.send_ping(b"heartbeat"), received, done
        )
        port = server.sockets[0].getsockname()[1]
        try:
            channel = await connect_channel(f"ws://127.0.0.1:{port}", "token")
            # recv_frame 호출 전에 이미 pong이 도착해야 함
            await asyncio.wait_for(done.wait(), timeout=5)
            ping = await channel.recv_frame()
            await channel.close()
        finally:
            server.close()

        assert received[0].opcode is Opcode.PONG
        assert received[0].data == b"heartbeat"
        assert ping.opcode is Opcode.PING
        assert ping.data == b"heartbeat"

    @pytest.mark.asyncio
    async def test_stray_continuation_frame(self) -> None:
        """시작 프레임 없는 CONT는 ProtocolError"""
        channel = WebSocketChannel(
            ClientProtocol(parse_uri("ws://127.0.0.1/")),
            asyncio.StreamReader(),
            None,
            [Frame(Opcode.CONT, b"orphan")],
        )

        with pytest.raises(ProtocolError):
            await channel.recv_frame()


class TestClose:
    """close 핸드셰이크"""

    @pytest.mark.asyncio
    async def test_server_close(self) -> None:
        """서버 close 프레임 전달 후 다음 수신은 ConnectionClosed"""

        async def handler(ws: ServerConnection) -> None:
            await ws.close(CloseCode.GOING_AWAY, "maintenance")

        async with serve(handler, "127.0.0.1", 0) as server:
            channel = await connect_channel(server_uri(server), "token")
            frame = await channel.recv_frame()

            with pytest.raises(ConnectionClosed):
                await asyncio.wait_for(channel.recv_frame(), timeout=5)

            await channel.close()

        assert frame.opcode is Opcode.CLOSE
        assert Close.parse(frame.data) == Close(CloseCode.GOING_AWAY, "maintenance")
        assert channel.state is State.CLOSED

    @pytest.mark.asyncio
    async def test_close_with_upgrade_response_echoed_on_connect(self) -> None:
        """101 응답과 같이 온 close는 연결 직후 echo"""
        received: list[Frame] = []
        done = asyncio.Event()
        server = await start_upgrade_with_frame_server(
            lambda protocol: protocol.send_close(CloseCode.GOING_AWAY, "maintenance"),
            received,
            done,
        )
        port = server.sockets[0].getsockname()[1]
        try:
            channel = await connect_channel(f"ws://127.0.0.1:{port}", "token")
            await asyncio.wait_for(done.wait(), timeout=5)
            frame = await channel.recv_frame()

            with pytest.raises(ConnectionClosed):
                await asyncio.wait_for(channel.recv_frame(), timeout=5)

            await channel.close()
        finally:
            server.close()

        assert received[0].opcode is Opcode.CLOSE
        assert Close.parse(received[0].data).code == CloseCode.GOING_AWAY
        assert frame.opcode is Opcode.CLOSE
        assert Close.parse(frame.data) == Close(CloseCode.GOING_AWAY, "maintenance")

    @pytest.mark.asyncio
    async def test_client_close(self) -> None:
        """클라이언트 close는 서버 핸들러 종료로 이어짐"""
        closed = asyncio.Event()

        async def handler(ws: ServerConnection) -> None:
            await ws.wait_closed()
            closed.set()

        async with serve(handler, "127.0.0.1", 0) as server:
            channel = await connect_channel(server_uri(server), "token")
            await channel.close()
            await channel.close()
            await asyncio.wait_for(closed.wait(), timeout=5)

        assert channel.state is not State.OPEN
