"""
OpenAPI 에러 분류

REST 호출과 스트림이 공통으로 사용하는 닫힌(closed) 에러 집합.
재시도/복구는 하지 않으며 모든 실패는 호출자에게 한 번 전달됨.

- ServiceError: 서버가 비즈니스 레벨에서 요청을 거부 (원인 없음)
- TransportError: HTTP 교환 실패 (연결 거부, TLS, 타임아웃)
- HandshakeError: 스트림 업그레이드 요청 생성 실패 (잘못된 URI/헤더)
- StreamTransportError: 스트림 채널 실패 (핸드셰이크 거부, 비정상 종료)
- EncodingError: 요청/응답/프레임 JSON 인코딩·디코딩 실패
- GeneralError: 200이 아닌 HTTP 응답 (원인 없음)
"""


class InvestError(Exception):
    """OpenAPI 에러 기본 클래스

    Args:
        description: 에러 설명
        cause: 직접적인 원인 예외 (없으면 None)
    """

    def __init__(self, description: str, cause: BaseException | None = None):
        self.description = description
        self.cause = cause
        super().__init__(description)

    def __str__(self) -> str:
        name = type(self).__name__
        if self.cause is None:
            return f"{name}(description={self.description})"
        return f"{name}(description={self.description}, cause={self.cause})"


class ServiceError(InvestError):
    """서비스 에러

    요청은 처리되었으나 서버가 비즈니스 레벨에서 거부함.
    """

    def __init__(self, http_code: int, tracking_id: str, code: str, message: str):
        self.http_code = http_code
        self.tracking_id = tracking_id
        self.code = code
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return (
            f"ServiceError(http_code={self.http_code}, tracking_id={self.tracking_id}, "
            f"code={self.code}, message={self.message})"
        )


class TransportError(InvestError):
    """HTTP 요청 실패 (네트워크/TLS/타임아웃)"""


class HandshakeError(InvestError):
    """스트림 업그레이드 요청 생성 실패"""


class StreamTransportError(InvestError):
    """스트림 채널 실패

    스트림에서 발생하면 해당 채널은 더 이상 사용할 수 없음.
    """


class EncodingError(InvestError):
    """JSON 직렬화/역직렬화 실패"""


class GeneralError(InvestError):
    """예상하지 못한 HTTP 응답

    description에 상태 코드와 응답 본문 전체가 포함됨.
    """

    def __init__(self, description: str):
        super().__init__(description)
