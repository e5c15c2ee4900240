"""
Tinkoff Invest OpenAPI 클라이언트

Bearer 토큰 인증 REST 호출과 WebSocket 스트림 진입점.
모든 REST 응답은 Response[T] envelope으로 디코딩.
재시도/백오프 없음: 모든 실패는 호출자에게 한 번 전달됨.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError
from pydantic_core import PydanticSerializationError

from tinvest.adapters.errors import EncodingError, GeneralError, TransportError
from tinvest.adapters.models import (
    AccountsPayload,
    CandlesPayload,
    EmptyPayload,
    LimitOrderPayload,
    LimitOrderRequest,
    MarketInstrumentListPayload,
    MarketOrderPayload,
    MarketOrderRequest,
    OperationsPayload,
    OrderBookPayload,
    OrdersPayload,
    PayloadT,
    PortfolioCurrenciesPayload,
    PortfolioPayload,
    Response,
    SandboxAccount,
    SandboxRegisterRequest,
    SandboxSetCurrencyBalanceRequest,
    SandboxSetPositionBalanceRequest,
    SearchMarketInstrumentPayload,
)
from tinvest.adapters.tinkoff.stream import EventSink, EventSource, open_event_stream
from tinvest.adapters.tinkoff.ws_client import connect_channel
from tinvest.core.config.loader import ClientConfig
from tinvest.core.constants import Defaults, TinkoffEndpoints
from tinvest.core.types import BrokerAccountType, Currency, Interval, Operation

logger = logging.getLogger(__name__)


class TinkoffInvestClient:
    """Tinkoff Invest OpenAPI 클라이언트

    (HTTP 클라이언트, REST 엔드포인트, 토큰) 세 값만 가지며 생성 후 변경되지 않음.
    여러 REST 호출을 동시에 실행해도 안전.

    Args:
        endpoint: REST API 베이스 URL
        token: Bearer 토큰
        http_client: 사용할 httpx.AsyncClient (None이면 내부에서 생성 후 소유)
        ws_endpoint: 기본 스트림 엔드포인트
        timeout: 내부 생성 클라이언트의 요청 타임아웃 (초)
    """

    def __init__(
        self,
        endpoint: str,
        token: str,
        http_client: httpx.AsyncClient | None = None,
        *,
        ws_endpoint: str = TinkoffEndpoints.WS_URL,
        timeout: float = Defaults.REQUEST_TIMEOUT,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.token = token
        self.ws_endpoint = ws_endpoint
        self.timeout = timeout

        self._client = http_client
        self._owns_client = http_client is None

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        http_client: httpx.AsyncClient | None = None,
    ) -> "TinkoffInvestClient":
        """ClientConfig로부터 클라이언트 생성"""
        return cls(
            endpoint=config.rest_url,
            token=config.token,
            http_client=http_client,
            ws_endpoint=config.ws_url,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """HTTP 클라이언트 가져오기 (lazy initialization)"""
        if self._client is None or (self._owns_client and self._client.is_closed):
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        """내부에서 생성한 HTTP 클라이언트 종료 (외부 주입 클라이언트는 유지)"""
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "TinkoffInvestClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # 요청 디스패치
    # -------------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.token}",
        }

    async def _request(
        self,
        method: str,
        path: str,
        payload_type: type[PayloadT] | Any,
        params: dict[str, str] | None = None,
        body: str | None = None,
    ) -> Response[PayloadT]:
        """API 요청 실행

        상태 코드 확인 전에 응답 본문 전체를 먼저 읽음
        (200이 아닌 응답도 본문으로 진단 가능하도록).

        Args:
            method: HTTP 메서드 (GET, POST)
            path: API 경로 (예: /market/orderbook)
            payload_type: Response payload 타입
            params: 쿼리 파라미터 (키 중복 없음, 순서 무관)
            body: 직렬화된 JSON 본문 (POST, 없으면 빈 문자열)

        Returns:
            디코딩된 Response[payload_type]

        Raises:
            TransportError: 네트워크/HTTP 교환 실패
            GeneralError: 200이 아닌 응답
            EncodingError: 응답 본문 디코딩 실패
        """
        url = f"{self.endpoint}{path}"
        client = await self._get_client()

        try:
            response = await client.request(
                method,
                url,
                params=params,
                headers=self._headers(),
                content=body,
            )
            text = response.text
        except httpx.HTTPError as e:
            logger.error(
                "Request error",
                extra={"path": path, "error": str(e)},
            )
            raise TransportError("HTTP request failed", cause=e) from e

        if response.status_code != httpx.codes.OK:
            logger.warning(
                "Unexpected response",
                extra={"path": path, "status": response.status_code},
            )
            raise GeneralError(
                f"Got unexpected response, status={response.status_code} text={text}"
            )

        return _decode_response(text, payload_type)

    async def _get(
        self,
        path: str,
        payload_type: type[PayloadT] | Any,
        params: dict[str, str] | None = None,
    ) -> Response[PayloadT]:
        return await self._request("GET", path, payload_type, params=params)

    async def _post(
        self,
        path: str,
        payload_type: type[PayloadT] | Any,
        params: dict[str, str] | None = None,
        body: str = "",
    ) -> Response[PayloadT]:
        return await self._request("POST", path, payload_type, params=params, body=body)

    # -------------------------------------------------------------------------
    # Market
    # -------------------------------------------------------------------------

    async def stocks(self) -> Response[MarketInstrumentListPayload]:
        """주식 종목 목록"""
        return await self._get("/market/stocks", MarketInstrumentListPayload)

    async def bonds(self) -> Response[MarketInstrumentListPayload]:
        """채권 종목 목록"""
        return await self._get("/market/bonds", MarketInstrumentListPayload)

    async def etfs(self) -> Response[MarketInstrumentListPayload]:
        """ETF 종목 목록"""
        return await self._get("/market/etfs", MarketInstrumentListPayload)

    async def currencies(self) -> Response[MarketInstrumentListPayload]:
        """통화 종목 목록"""
        return await self._get("/market/currencies", MarketInstrumentListPayload)

    async def order_book(self, figi: str, depth: int) -> Response[OrderBookPayload]:
        """호가창 스냅샷

        Args:
            figi: 종목 FIGI
            depth: 호가 깊이
        """
        params = {"figi": figi, "depth": str(depth)}
        return await self._get("/market/orderbook", OrderBookPayload, params)

    async def candles(
        self,
        figi: str,
        from_: datetime,
        to: datetime,
        interval: Interval,
    ) -> Response[CandlesPayload]:
        """과거 캔들 조회

        Args:
            figi: 종목 FIGI
            from_: 시작 시각 (timezone 없으면 로컬 시간으로 간주)
            to: 종료 시각
            interval: 캔들 주기
        """
        params = {
            "figi": figi,
            "from": _format_time(from_),
            "to": _format_time(to),
            "interval": Interval(interval).value,
        }
        return await self._get("/market/candles", CandlesPayload, params)

    async def search_by_figi(self, figi: str) -> Response[SearchMarketInstrumentPayload]:
        """FIGI로 종목 검색"""
        return await self._get(
            "/market/search/by-figi", SearchMarketInstrumentPayload, {"figi": figi}
        )

    async def search_by_ticker(self, ticker: str) -> Response[MarketInstrumentListPayload]:
        """티커로 종목 검색 (여러 거래소에 같은 티커가 있을 수 있음)"""
        return await self._get(
            "/market/search/by-ticker", MarketInstrumentListPayload, {"ticker": ticker}
        )

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    async def orders(
        self,
        broker_account_id: str | None = None,
    ) -> Response[list[OrdersPayload]]:
        """활성 주문 목록"""
        params = _account_params(broker_account_id)
        return await self._get("/orders", list[OrdersPayload], params)

    async def make_limit_order(
        self,
        figi: str,
        operation: Operation,
        lots: int,
        price: Decimal | float | str,
        broker_account_id: str | None = None,
    ) -> Response[LimitOrderPayload]:
        """지정가 주문 생성

        Args:
            figi: 종목 FIGI
            operation: Buy / Sell
            lots: 로트 수
            price: 지정가
            broker_account_id: 계좌 ID (None이면 기본 계좌)

        Raises:
            EncodingError: 요청 본문 직렬화 실패
        """
        request = LimitOrderRequest(operation=operation, lots=lots, price=Decimal(str(price)))
        params = _account_params(broker_account_id)
        params["figi"] = figi

        logger.info(
            "지정가 주문 요청",
            extra={"figi": figi, "operation": Operation(operation).value, "lots": lots},
        )
        return await self._post(
            "/orders/limit-order", LimitOrderPayload, params, _encode_body(request)
        )

    async def make_market_order(
        self,
        figi: str,
        operation: Operation,
        lots: int,
        broker_account_id: str | None = None,
    ) -> Response[MarketOrderPayload]:
        """시장가 주문 생성"""
        request = MarketOrderRequest(operation=operation, lots=lots)
        params = _account_params(broker_account_id)
        params["figi"] = figi

        logger.info(
            "시장가 주문 요청",
            extra={"figi": figi, "operation": Operation(operation).value, "lots": lots},
        )
        return await self._post(
            "/orders/market-order", MarketOrderPayload, params, _encode_body(request)
        )

    async def cancel_order(
        self,
        order_id: str,
        broker_account_id: str | None = None,
    ) -> Response[EmptyPayload]:
        """주문 취소 (본문 없음)"""
        params = _account_params(broker_account_id)
        params["orderId"] = order_id

        logger.info("주문 취소 요청", extra={"order_id": order_id})
        return await self._post("/orders/cancel", EmptyPayload, params)

    # -------------------------------------------------------------------------
    # Portfolio / Operations / User
    # -------------------------------------------------------------------------

    async def portfolio(
        self,
        broker_account_id: str | None = None,
    ) -> Response[PortfolioPayload]:
        """보유 포지션"""
        params = _account_params(broker_account_id)
        return await self._get("/portfolio", PortfolioPayload, params)

    async def portfolio_currencies(
        self,
        broker_account_id: str | None = None,
    ) -> Response[PortfolioCurrenciesPayload]:
        """보유 통화"""
        params = _account_params(broker_account_id)
        return await self._get("/portfolio/currencies", PortfolioCurrenciesPayload, params)

    async def operations(
        self,
        from_: datetime,
        to: datetime,
        figi: str | None = None,
        broker_account_id: str | None = None,
    ) -> Response[OperationsPayload]:
        """거래 내역 조회

        Args:
            from_: 시작 시각
            to: 종료 시각
            figi: 종목 FIGI (None이면 전체)
            broker_account_id: 계좌 ID
        """
        params = _account_params(broker_account_id)
        if figi is not None:
            params["figi"] = figi
        params["from"] = _format_time(from_)
        params["to"] = _format_time(to)
        return await self._get("/operations", OperationsPayload, params)

    async def accounts(self) -> Response[AccountsPayload]:
        """연결된 브로커 계좌 목록"""
        return await self._get("/user/accounts", AccountsPayload)

    # -------------------------------------------------------------------------
    # Sandbox
    # -------------------------------------------------------------------------

    async def register(
        self,
        broker_account_type: BrokerAccountType,
    ) -> Response[SandboxAccount]:
        """샌드박스 계좌 등록"""
        request = SandboxRegisterRequest(broker_account_type=broker_account_type)
        return await self._post("/sandbox/register", SandboxAccount, body=_encode_body(request))

    async def set_currencies_balance(
        self,
        currency: Currency,
        balance: Decimal | float | str,
        broker_account_id: str | None = None,
    ) -> Response[EmptyPayload]:
        """샌드박스 통화 잔고 설정"""
        request = SandboxSetCurrencyBalanceRequest(
            currency=currency,
            balance=Decimal(str(balance)),
        )
        params = _account_params(broker_account_id)
        return await self._post(
            "/sandbox/currencies/balance", EmptyPayload, params, _encode_body(request)
        )

    async def set_positions_balance(
        self,
        figi: str,
        balance: Decimal | float | str,
        broker_account_id: str | None = None,
    ) -> Response[EmptyPayload]:
        """샌드박스 종목 보유 수량 설정"""
        request = SandboxSetPositionBalanceRequest(figi=figi, balance=Decimal(str(balance)))
        params = _account_params(broker_account_id)
        return await self._post(
            "/sandbox/positions/balance", EmptyPayload, params, _encode_body(request)
        )

    async def remove(self, broker_account_id: str | None = None) -> Response[EmptyPayload]:
        """샌드박스 계좌 삭제"""
        params = _account_params(broker_account_id)
        return await self._post("/sandbox/remove", EmptyPayload, params)

    async def clear(self, broker_account_id: str | None = None) -> Response[EmptyPayload]:
        """샌드박스 계좌의 모든 포지션/잔고 초기화"""
        params = _account_params(broker_account_id)
        return await self._post("/sandbox/clear", EmptyPayload, params)

    # -------------------------------------------------------------------------
    # Streaming
    # -------------------------------------------------------------------------

    async def get_stream(
        self,
        ws_endpoint: str | None = None,
    ) -> tuple[EventSink, EventSource]:
        """스트림 연결 후 (sink, source) 반환

        연결은 한 번만 시도하며 끊어지면 다시 호출해야 함.

        Args:
            ws_endpoint: 스트림 엔드포인트 (None이면 self.ws_endpoint)

        Raises:
            HandshakeError: 업그레이드 요청 생성 실패
            StreamTransportError: 연결/핸드셰이크 실패
        """
        channel = await connect_channel(ws_endpoint or self.ws_endpoint, self.token)
        return open_event_stream(channel)


def _account_params(broker_account_id: str | None) -> dict[str, str]:
    """brokerAccountId 쿼리 (값이 있을 때만)"""
    if broker_account_id is None:
        return {}
    return {"brokerAccountId": broker_account_id}


def _format_time(value: datetime) -> str:
    """RFC3339 문자열 (timezone 없는 값은 로컬 시간으로 간주)"""
    if value.tzinfo is None:
        value = value.astimezone()
    return value.isoformat()


def _encode_body(request: BaseModel) -> str:
    """요청 본문 → JSON 문자열

    Raises:
        EncodingError: 직렬화 실패
    """
    try:
        return request.model_dump_json(by_alias=True, exclude_none=True)
    except PydanticSerializationError as e:
        raise EncodingError("Request body serialization failed", cause=e) from e


def _decode_response(text: str, payload_type: type[PayloadT] | Any) -> Response[PayloadT]:
    """응답 본문 → Response[payload_type]

    Raises:
        EncodingError: JSON 형식 또는 스키마 불일치
    """
    try:
        return Response[payload_type].model_validate_json(text)
    except ValidationError as e:
        logger.warning("응답 디코딩 실패", extra={"error": str(e)})
        raise EncodingError("Response deserialization failed", cause=e) from e
