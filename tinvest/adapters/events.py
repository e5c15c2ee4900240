"""
스트림 이벤트 모델

OutcomeEvent (클라이언트 → 서버): 채널별 subscribe/unsubscribe 명령 + ping/pong
IncomeEvent (서버 → 클라이언트): candle / orderbook / instrument_info / error
이벤트 + 전송 계층에서 합성되는 binary / ping / pong / close

JSON 프레임은 "event" 필드로 구분되는 tagged union.
Ping/Pong/Binary/Close는 JSON으로 인코딩되지 않는 제어용 variant.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from tinvest.adapters.errors import EncodingError
from tinvest.adapters.models import ApiModel, JsonDecimal
from tinvest.core.types import Interval


class EventTypes:
    """이벤트 태그 상수 ("event" 필드 값)"""

    # Outbound
    CANDLE_SUBSCRIBE = "candle:subscribe"
    CANDLE_UNSUBSCRIBE = "candle:unsubscribe"
    ORDERBOOK_SUBSCRIBE = "orderbook:subscribe"
    ORDERBOOK_UNSUBSCRIBE = "orderbook:unsubscribe"
    INSTRUMENT_INFO_SUBSCRIBE = "instrument_info:subscribe"
    INSTRUMENT_INFO_UNSUBSCRIBE = "instrument_info:unsubscribe"

    # Inbound
    CANDLE = "candle"
    ORDERBOOK = "orderbook"
    INSTRUMENT_INFO = "instrument_info"
    ERROR = "error"


# 초 이하 자릿수가 6자리를 넘는 부분 (서버는 나노초까지 보냄)
_SUBSECOND_OVERFLOW = re.compile(r"(\.\d{6})\d+")


def _truncate_subsecond(value: object) -> object:
    if isinstance(value, str):
        return _SUBSECOND_OVERFLOW.sub(r"\1", value, count=1)
    return value


# 마이크로초로 잘라서 파싱하는 스트림 시각
StreamTime = Annotated[datetime, BeforeValidator(_truncate_subsecond)]


# -------------------------------------------------------------------------
# 제어용 variant (양방향 공용 / 수신 전용)
# -------------------------------------------------------------------------


@dataclass(frozen=True)
class Ping:
    """ping 제어 프레임 (payload 바이트 그대로 전달)"""

    data: bytes = b""


@dataclass(frozen=True)
class Pong:
    """pong 제어 프레임"""

    data: bytes = b""


@dataclass(frozen=True)
class Binary:
    """해석하지 않은 binary 프레임"""

    data: bytes


@dataclass(frozen=True)
class Close:
    """close 프레임 수신 (스트림의 마지막 항목)

    Attributes:
        code: close 코드 (close 프레임에 코드가 없으면 None)
        reason: close 사유
    """

    code: int | None = None
    reason: str = ""


# -------------------------------------------------------------------------
# Outbound (subscribe / unsubscribe)
# -------------------------------------------------------------------------


class CandleSubscribe(ApiModel):
    event: Literal["candle:subscribe"] = EventTypes.CANDLE_SUBSCRIBE
    figi: str
    interval: Interval
    request_id: str | None = None


class CandleUnsubscribe(ApiModel):
    event: Literal["candle:unsubscribe"] = EventTypes.CANDLE_UNSUBSCRIBE
    figi: str
    interval: Interval
    request_id: str | None = None


class OrderbookSubscribe(ApiModel):
    event: Literal["orderbook:subscribe"] = EventTypes.ORDERBOOK_SUBSCRIBE
    figi: str
    depth: int
    request_id: str | None = None


class OrderbookUnsubscribe(ApiModel):
    event: Literal["orderbook:unsubscribe"] = EventTypes.ORDERBOOK_UNSUBSCRIBE
    figi: str
    depth: int
    request_id: str | None = None


class InstrumentInfoSubscribe(ApiModel):
    event: Literal["instrument_info:subscribe"] = EventTypes.INSTRUMENT_INFO_SUBSCRIBE
    figi: str
    request_id: str | None = None


class InstrumentInfoUnsubscribe(ApiModel):
    event: Literal["instrument_info:unsubscribe"] = EventTypes.INSTRUMENT_INFO_UNSUBSCRIBE
    figi: str
    request_id: str | None = None


SubscriptionEvent = Union[
    CandleSubscribe,
    CandleUnsubscribe,
    OrderbookSubscribe,
    OrderbookUnsubscribe,
    InstrumentInfoSubscribe,
    InstrumentInfoUnsubscribe,
]

OutcomeEvent = Union[SubscriptionEvent, Ping, Pong]


# -------------------------------------------------------------------------
# Inbound payloads
# -------------------------------------------------------------------------


class WireModel(BaseModel):
    """서버가 보낸 이름 그대로(snake_case) 쓰는 스트림 payload 베이스"""

    model_config = ConfigDict(frozen=True)


class CandleEventPayload(WireModel):
    o: JsonDecimal
    c: JsonDecimal
    h: JsonDecimal
    l: JsonDecimal  # noqa: E741
    v: JsonDecimal
    time: StreamTime
    interval: Interval
    figi: str


class OrderBookEventPayload(WireModel):
    """스트림 호가창 (bids/asks는 [가격, 수량] 쌍 목록)"""

    figi: str
    depth: int
    bids: list[tuple[JsonDecimal, JsonDecimal]] = Field(default_factory=list)
    asks: list[tuple[JsonDecimal, JsonDecimal]] = Field(default_factory=list)


class InstrumentInfoEventPayload(WireModel):
    trade_status: str
    min_price_increment: JsonDecimal
    lot: JsonDecimal
    accrued_interest: JsonDecimal | None = None
    limit_up: JsonDecimal | None = None
    limit_down: JsonDecimal | None = None
    figi: str


class ErrorEventPayload(WireModel):
    error: str
    request_id: str | None = None


# -------------------------------------------------------------------------
# Inbound events
# -------------------------------------------------------------------------


class CandleEvent(WireModel):
    event: Literal["candle"] = EventTypes.CANDLE
    time: StreamTime
    payload: CandleEventPayload


class OrderBookEvent(WireModel):
    event: Literal["orderbook"] = EventTypes.ORDERBOOK
    time: StreamTime
    payload: OrderBookEventPayload


class InstrumentInfoEvent(WireModel):
    event: Literal["instrument_info"] = EventTypes.INSTRUMENT_INFO
    time: StreamTime
    payload: InstrumentInfoEventPayload


class ErrorEvent(WireModel):
    event: Literal["error"] = EventTypes.ERROR
    time: StreamTime
    payload: ErrorEventPayload


MarketEvent = Union[CandleEvent, OrderBookEvent, InstrumentInfoEvent, ErrorEvent]

IncomeEvent = Union[MarketEvent, Binary, Ping, Pong, Close]


_OUTCOME_ADAPTER: TypeAdapter[SubscriptionEvent] = TypeAdapter(
    Annotated[SubscriptionEvent, Field(discriminator="event")]
)
_INCOME_ADAPTER: TypeAdapter[MarketEvent] = TypeAdapter(
    Annotated[MarketEvent, Field(discriminator="event")]
)


def encode_outcome_event(event: SubscriptionEvent) -> str:
    """subscribe/unsubscribe 명령 → JSON 텍스트

    값이 없는 선택 필드(requestId)는 null이 아니라 생략됨.

    Args:
        event: 제어용이 아닌 OutcomeEvent

    Returns:
        JSON 문자열

    Raises:
        EncodingError: 직렬화 실패
    """
    try:
        return event.model_dump_json(by_alias=True, exclude_none=True)
    except PydanticSerializationError as e:
        raise EncodingError("Outcome event serialization failed", cause=e) from e


def decode_outcome_event(text: str | bytes) -> SubscriptionEvent:
    """JSON 텍스트 → subscribe/unsubscribe 명령 (서버 측 관점의 역변환)

    Raises:
        EncodingError: JSON 형식 또는 스키마 불일치
    """
    try:
        return _OUTCOME_ADAPTER.validate_json(text)
    except ValidationError as e:
        raise EncodingError("Outcome event deserialization failed", cause=e) from e


def decode_income_event(text: str | bytes) -> MarketEvent:
    """수신 JSON 텍스트 → IncomeEvent

    Raises:
        EncodingError: JSON 형식 또는 스키마 불일치, 알 수 없는 event 태그
    """
    try:
        return _INCOME_ADAPTER.validate_json(text)
    except ValidationError as e:
        raise EncodingError("Income event deserialization failed", cause=e) from e


def encode_income_event(event: MarketEvent) -> str:
    """IncomeEvent → JSON 텍스트 (Mock 서버/테스트에서 수신 프레임 생성용)"""
    try:
        return event.model_dump_json(exclude_none=True)
    except PydanticSerializationError as e:
        raise EncodingError("Income event serialization failed", cause=e) from e
