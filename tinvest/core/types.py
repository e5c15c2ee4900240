"""
타입 정의 모듈

OpenAPI에서 사용하는 Enum 정의
모든 Enum은 str을 상속하여 문자열 직렬화 가능 (값 = 와이어 리터럴)
"""

from enum import Enum


class TradingMode(str, Enum):
    """거래 모드 (실거래 / 샌드박스)"""

    PRODUCTION = "production"
    SANDBOX = "sandbox"


class Status(str, Enum):
    """응답 envelope 상태"""

    OK = "Ok"
    ERROR = "Error"


class Currency(str, Enum):
    """통화"""

    RUB = "RUB"
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    HKD = "HKD"
    CHF = "CHF"
    JPY = "JPY"
    CNY = "CNY"
    TRY = "TRY"


class Operation(str, Enum):
    """주문 방향"""

    BUY = "Buy"
    SELL = "Sell"


class OrderStatus(str, Enum):
    """주문 상태"""

    NEW = "New"
    PARTIALLY_FILL = "PartiallyFill"
    FILL = "Fill"
    CANCELLED = "Cancelled"
    REPLACED = "Replaced"
    PENDING_CANCEL = "PendingCancel"
    REJECTED = "Rejected"
    PENDING_REPLACE = "PendingReplace"
    PENDING_NEW = "PendingNew"


class OrderType(str, Enum):
    """주문 유형"""

    LIMIT = "Limit"
    MARKET = "Market"


class InstrumentType(str, Enum):
    """종목 유형"""

    STOCK = "Stock"
    CURRENCY = "Currency"
    BOND = "Bond"
    ETF = "Etf"


class TradeStatus(str, Enum):
    """거래 가능 상태"""

    NORMAL_TRADING = "NormalTrading"
    NOT_AVAILABLE_FOR_TRADING = "NotAvailableForTrading"


class BrokerAccountType(str, Enum):
    """브로커 계좌 유형"""

    TINKOFF = "Tinkoff"
    TINKOFF_IIS = "TinkoffIis"  # 개인 투자 계좌 (IIS)


class OperationStatus(str, Enum):
    """거래 내역 처리 상태"""

    DONE = "Done"
    DECLINE = "Decline"
    PROGRESS = "Progress"


class OperationTypeWithCommission(str, Enum):
    """거래 내역 유형 (수수료/세금 포함)"""

    BUY = "Buy"
    BUY_CARD = "BuyCard"
    SELL = "Sell"
    BROKER_COMMISSION = "BrokerCommission"
    EXCHANGE_COMMISSION = "ExchangeCommission"
    SERVICE_COMMISSION = "ServiceCommission"
    MARGIN_COMMISSION = "MarginCommission"
    OTHER_COMMISSION = "OtherCommission"
    PAY_IN = "PayIn"
    PAY_OUT = "PayOut"
    TAX = "Tax"
    TAX_LUCRE = "TaxLucre"
    TAX_DIVIDEND = "TaxDividend"
    TAX_COUPON = "TaxCoupon"
    TAX_BACK = "TaxBack"
    REPAYMENT = "Repayment"
    PART_REPAYMENT = "PartRepayment"
    COUPON = "Coupon"
    DIVIDEND = "Dividend"
    SECURITY_IN = "SecurityIn"
    SECURITY_OUT = "SecurityOut"


class Interval(str, Enum):
    """캔들 주기

    값은 쿼리 파라미터와 스트림 프레임에 그대로 쓰이는 리터럴 토큰.
    """

    MIN_1 = "1min"
    MIN_2 = "2min"
    MIN_3 = "3min"
    MIN_5 = "5min"
    MIN_10 = "10min"
    MIN_15 = "15min"
    MIN_30 = "30min"
    HOUR = "Hour"
    DAY = "Day"
    WEEK = "Week"
    MONTH = "Month"

    def __str__(self) -> str:
        return self.value
