"""
설정 모듈

secrets.yaml 로드 및 클라이언트 설정
"""

from tinvest.core.config.loader import (
    ClientConfig,
    Secrets,
    SecretsLoadError,
    Settings,
    get_client_config,
    get_settings,
    load_secrets,
)

__all__ = [
    "ClientConfig",
    "Secrets",
    "SecretsLoadError",
    "Settings",
    "get_client_config",
    "get_settings",
    "load_secrets",
]
