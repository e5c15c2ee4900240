"""
설정 로더

secrets.yaml 로드 및 클라이언트 설정 생성
"""

from dataclasses import dataclass
from pathlib import Path

import yaml

from tinvest.core.constants import TinkoffEndpoints, Paths
from tinvest.core.types import TradingMode


@dataclass(frozen=True)
class Secrets:
    """보안 설정 (secrets.yaml에서 로드)

    불변 데이터 구조로 설정 변경 방지
    """

    mode: TradingMode
    token: str


@dataclass(frozen=True)
class ClientConfig:
    """OpenAPI 연결 설정

    토큰과 엔드포인트 정보를 포함
    """

    rest_url: str
    ws_url: str
    token: str


class SecretsLoadError(Exception):
    """Secrets 로드 실패 예외"""

    pass


def load_secrets(path: Path | None = None) -> Secrets:
    """secrets.yaml 파일 로드

    Args:
        path: secrets.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Secrets 인스턴스

    Raises:
        SecretsLoadError: 파일이 없거나 형식이 잘못된 경우
        ValueError: 유효하지 않은 mode인 경우
    """
    if path is None:
        path = Paths.SECRETS_FILE

    if not path.exists():
        raise SecretsLoadError(f"secrets.yaml 파일을 찾을 수 없습니다: {path}")

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SecretsLoadError(f"secrets.yaml 파싱 실패: {e}") from e

    if data is None:
        raise SecretsLoadError("secrets.yaml이 비어 있습니다")

    # mode 검증
    mode_str = data.get("mode")
    if mode_str is None:
        raise SecretsLoadError("secrets.yaml에 'mode' 필드가 없습니다")

    try:
        mode = TradingMode(mode_str)
    except ValueError as e:
        valid_modes = [m.value for m in TradingMode]
        raise ValueError(
            f"유효하지 않은 mode입니다: '{mode_str}'. "
            f"유효한 값: {valid_modes}"
        ) from e

    # 해당 모드의 토큰 로드
    mode_config = data.get(mode.value)
    if mode_config is None:
        raise SecretsLoadError(
            f"secrets.yaml에 '{mode.value}' 설정이 없습니다"
        )

    token = mode_config.get("token")
    if not token:
        raise SecretsLoadError(
            f"secrets.yaml의 {mode.value} 섹션에 'token'이 없습니다"
        )

    return Secrets(mode=mode, token=token)


def get_client_config(secrets: Secrets) -> ClientConfig:
    """모드에 따른 클라이언트 설정 반환

    Args:
        secrets: Secrets 인스턴스

    Returns:
        ClientConfig 인스턴스 (Production 또는 Sandbox)
    """
    if secrets.mode == TradingMode.PRODUCTION:
        rest_url = TinkoffEndpoints.PROD_REST_URL
    else:
        rest_url = TinkoffEndpoints.SANDBOX_REST_URL

    return ClientConfig(
        rest_url=rest_url,
        ws_url=TinkoffEndpoints.WS_URL,
        token=secrets.token,
    )


class Settings:
    """애플리케이션 설정 (싱글턴 패턴)

    secrets.yaml을 로드하고 관련 설정을 제공
    """

    _instance: "Settings | None" = None
    _secrets: Secrets | None = None

    def __new__(cls, secrets_path: Path | None = None) -> "Settings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, secrets_path: Path | None = None) -> None:
        if self._secrets is None:
            type(self)._secrets = load_secrets(secrets_path)

    @property
    def mode(self) -> TradingMode:
        """현재 거래 모드"""
        assert self._secrets is not None
        return self._secrets.mode

    @property
    def token(self) -> str:
        """API 토큰"""
        assert self._secrets is not None
        return self._secrets.token

    @property
    def client_config(self) -> ClientConfig:
        """현재 모드의 클라이언트 설정"""
        assert self._secrets is not None
        return get_client_config(self._secrets)

    @classmethod
    def reset(cls) -> None:
        """싱글턴 인스턴스 초기화 (테스트용)"""
        cls._instance = None
        cls._secrets = None


def get_settings(secrets_path: Path | None = None) -> Settings:
    """Settings 인스턴스 반환

    Args:
        secrets_path: secrets.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Settings 싱글턴 인스턴스
    """
    return Settings(secrets_path)
