"""
OpenAPI 데이터 모델

REST 응답 envelope과 payload, 요청 본문 DTO.
모든 모델은 불변(frozen)이며 와이어 이름은 camelCase.
금액/수량은 Decimal 타입을 사용하고 JSON에서는 숫자로 직렬화.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from tinvest.core.types import (
    BrokerAccountType,
    Currency,
    InstrumentType,
    Interval,
    Operation,
    OperationStatus,
    OperationTypeWithCommission,
    OrderStatus,
    OrderType,
    Status,
    TradeStatus,
)


# JSON 직렬화 시 문자열이 아닌 숫자로 출력되는 Decimal
JsonDecimal = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

PayloadT = TypeVar("PayloadT")


class ApiModel(BaseModel):
    """camelCase 와이어 이름을 쓰는 공통 베이스"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# -------------------------------------------------------------------------
# Envelope
# -------------------------------------------------------------------------


class Response(ApiModel, Generic[PayloadT]):
    """공통 응답 envelope

    status == Ok 는 payload 유효성의 필요조건일 뿐이며
    payload 디코딩 실패는 별도로 EncodingError가 됨.

    Attributes:
        tracking_id: 서버 추적 ID
        status: Ok / Error
        payload: 엔드포인트별 payload
    """

    tracking_id: str
    status: Status
    payload: PayloadT


class EmptyPayload(ApiModel):
    """빈 payload ({})"""


class MoneyAmount(ApiModel):
    """통화 금액"""

    currency: Currency
    value: JsonDecimal


# -------------------------------------------------------------------------
# Orders
# -------------------------------------------------------------------------


class OrdersPayload(ApiModel):
    """활성 주문 (GET /orders 의 목록 원소)"""

    order_id: str
    figi: str
    operation: Operation
    status: OrderStatus
    requested_lots: int
    executed_lots: int
    type: OrderType
    price: JsonDecimal


class LimitOrderPayload(ApiModel):
    """지정가 주문 결과"""

    order_id: str
    operation: Operation
    status: OrderStatus
    reject_reason: str | None = None
    message: str | None = None
    requested_lots: int
    executed_lots: int
    commission: MoneyAmount | None = None


class MarketOrderPayload(ApiModel):
    """시장가 주문 결과"""

    order_id: str
    operation: Operation
    status: OrderStatus
    reject_reason: str | None = None
    message: str | None = None
    requested_lots: int
    executed_lots: int
    commission: MoneyAmount | None = None


class LimitOrderRequest(ApiModel):
    """지정가 주문 요청 본문"""

    operation: Operation
    lots: int
    price: JsonDecimal


class MarketOrderRequest(ApiModel):
    """시장가 주문 요청 본문"""

    operation: Operation
    lots: int


# -------------------------------------------------------------------------
# Portfolio
# -------------------------------------------------------------------------


class Position(ApiModel):
    """포트폴리오 포지션

    Attributes:
        figi: 종목 FIGI
        instrument_type: 종목 유형
        balance: 보유 수량
        blocked: 주문에 묶인 수량
        lots: 보유 로트 수
        expected_yield: 예상 수익
        average_position_price: 평균 매입가
        average_position_price_no_nkd: 경과이자 제외 평균 매입가 (채권)
    """

    figi: str
    ticker: str | None = None
    isin: str | None = None
    instrument_type: InstrumentType
    balance: JsonDecimal
    blocked: JsonDecimal | None = None
    lots: int
    expected_yield: MoneyAmount | None = None
    average_position_price: MoneyAmount | None = None
    average_position_price_no_nkd: MoneyAmount | None = None
    name: str


class PortfolioPayload(ApiModel):
    positions: list[Position] = Field(default_factory=list)


class CurrencyPosition(ApiModel):
    """통화 잔고"""

    currency: Currency
    balance: JsonDecimal
    blocked: JsonDecimal | None = None


class PortfolioCurrenciesPayload(ApiModel):
    currencies: list[CurrencyPosition] = Field(default_factory=list)


# -------------------------------------------------------------------------
# Market
# -------------------------------------------------------------------------


class OrderBookOrder(ApiModel):
    """호가 한 단계"""

    price: JsonDecimal
    quantity: int


class OrderBookPayload(ApiModel):
    """호가창 스냅샷"""

    figi: str
    depth: int
    bids: list[OrderBookOrder] = Field(default_factory=list)
    asks: list[OrderBookOrder] = Field(default_factory=list)
    trade_status: TradeStatus
    min_price_increment: JsonDecimal
    face_value: JsonDecimal | None = None
    last_price: JsonDecimal | None = None
    close_price: JsonDecimal | None = None
    limit_up: JsonDecimal | None = None
    limit_down: JsonDecimal | None = None


class Candle(ApiModel):
    """과거 캔들 (o/c/h/l = 시가/종가/고가/저가, v = 거래량)"""

    figi: str
    interval: Interval
    o: JsonDecimal
    c: JsonDecimal
    h: JsonDecimal
    l: JsonDecimal  # noqa: E741
    v: int
    time: datetime


class CandlesPayload(ApiModel):
    figi: str
    interval: Interval
    candles: list[Candle] = Field(default_factory=list)


class MarketInstrument(ApiModel):
    """종목 정보"""

    figi: str
    ticker: str
    isin: str | None = None
    min_price_increment: JsonDecimal | None = None
    lot: int
    currency: Currency | None = None
    name: str
    type: InstrumentType


class SearchMarketInstrumentPayload(MarketInstrument):
    """FIGI 검색 결과 (단일 종목)"""


class MarketInstrumentListPayload(ApiModel):
    total: int
    instruments: list[MarketInstrument] = Field(default_factory=list)


# -------------------------------------------------------------------------
# Operations
# -------------------------------------------------------------------------


class OperationTrade(ApiModel):
    """거래 내역에 포함된 개별 체결"""

    trade_id: str
    date: datetime
    price: JsonDecimal
    quantity: int


class OperationItem(ApiModel):
    """거래 내역 항목"""

    id: str
    status: OperationStatus
    trades: list[OperationTrade] = Field(default_factory=list)
    commission: MoneyAmount | None = None
    currency: Currency
    payment: JsonDecimal
    price: JsonDecimal | None = None
    quantity: int | None = None
    figi: str | None = None
    instrument_type: InstrumentType | None = None
    is_margin_call: bool
    date: datetime
    operation_type: OperationTypeWithCommission | None = None


class OperationsPayload(ApiModel):
    operations: list[OperationItem] = Field(default_factory=list)


# -------------------------------------------------------------------------
# User / Sandbox
# -------------------------------------------------------------------------


class UserAccount(ApiModel):
    """연결된 브로커 계좌"""

    broker_account_type: BrokerAccountType
    broker_account_id: str


class AccountsPayload(ApiModel):
    accounts: list[UserAccount] = Field(default_factory=list)


class SandboxAccount(ApiModel):
    """샌드박스 계좌 등록 결과"""

    broker_account_type: BrokerAccountType
    broker_account_id: str


class SandboxRegisterRequest(ApiModel):
    broker_account_type: BrokerAccountType


class SandboxSetCurrencyBalanceRequest(ApiModel):
    currency: Currency
    balance: JsonDecimal


class SandboxSetPositionBalanceRequest(ApiModel):
    figi: str
    balance: JsonDecimal
