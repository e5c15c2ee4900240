"""
하드코딩 상수 - 변경될 일이 거의 없는 고정값

중요: 경로는 반드시 pathlib.Path 사용 (Windows/Linux 크로스 플랫폼)
"""

from pathlib import Path


# 프로젝트 루트 (이 파일 기준 3단계 상위: tinvest/core/constants.py → 루트)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent.parent


class TinkoffEndpoints:
    """Tinkoff Invest OpenAPI 엔드포인트 (고정값)

    공식 문서: https://tinkoffcreditsystems.github.io/invest-openapi/
    """

    # REST
    PROD_REST_URL: str = "https://api-invest.tinkoff.ru/openapi"
    SANDBOX_REST_URL: str = "https://api-invest.tinkoff.ru/openapi/sandbox"

    # Streaming (production / sandbox 공용)
    WS_URL: str = "wss://api-invest.tinkoff.ru/openapi/md/v1/md-openapi/ws"


class Defaults:
    """기본값 상수"""

    REQUEST_TIMEOUT: float = 30.0  # REST 요청 타임아웃 (초)
    WS_OPEN_TIMEOUT: float = 10.0  # WebSocket 연결 + 핸드셰이크 타임아웃 (초)
    WS_READ_SIZE: int = 2**16  # 소켓 1회 읽기 크기 (바이트)

    LOG_LEVEL: str = "INFO"


class Paths:
    """프로젝트 경로 상수 (pathlib 사용 - OS 독립적)"""

    # 디렉토리
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"

    # 설정 파일
    SECRETS_FILE: Path = CONFIG_DIR / "secrets.yaml"
