"""
tinvest 로그 출력 구성

tinvest 모듈들은 logging.getLogger(__name__) 로거에 기록만 하고
핸들러는 설치하지 않음. 출력 위치는 클라이언트를 띄우는 스크립트가
시작 시 setup_logging()으로 한 번 정함.

루트 로거에 두 개의 출력을 연결:
    stdout 스트림, 자정마다 교체되는 <name>.log 파일

예:
    setup_logging("portfolio-sync", console_level=logging.WARNING)
    # REST 호출과 스트림 이벤트가 logs/portfolio-sync.log에 남음
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from tinvest.core.constants import Paths


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_BACKUP_COUNT = 7  # 교체된 파일 보관 개수 (일 단위)

# 전송 계층 라이브러리: 요청/프레임마다 DEBUG 로그를 남기므로 WARNING부터만
NOISY_LOGGERS = [
    "httpx",
    "httpcore",
    "websockets",
    "asyncio",
]


def setup_logging(
    process_name: str,
    console_level: int = logging.INFO,
    file_level: int = logging.INFO,
    log_dir: Path | None = None,
) -> logging.Logger:
    """루트 로거에 stdout / daily 파일 핸들러 설치

    다시 호출하면 이전 핸들러를 닫고 새로 구성.

    Args:
        process_name: 로그 파일 이름 (확장자 제외)
        console_level: stdout 출력 최소 레벨
        file_level: 파일 기록 최소 레벨
        log_dir: 로그 파일 위치 (None이면 Paths.LOGS_DIR)

    Returns:
        루트 Logger
    """
    log_file = get_log_file_path(process_name, log_dir)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    # 레벨 필터링은 핸들러 단위
    root_logger.setLevel(logging.DEBUG)

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    for handler in (
        _stdout_handler(console_level),
        _daily_file_handler(log_file, file_level),
    ):
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info(
        "tinvest 로그 출력 구성",
        extra={
            "log_file": str(log_file),
            "console_level": logging.getLevelName(console_level),
            "file_level": logging.getLevelName(file_level),
        },
    )
    return root_logger


def _stdout_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    return handler


def _daily_file_handler(log_file: Path, level: int) -> logging.Handler:
    handler = TimedRotatingFileHandler(
        filename=log_file,
        when="midnight",
        backupCount=LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.suffix = "%Y-%m-%d"  # portfolio-sync.log.2026-02-21
    handler.setLevel(level)
    return handler


def get_log_file_path(process_name: str, log_dir: Path | None = None) -> Path:
    """<log_dir>/<process_name>.log"""
    return (log_dir or Paths.LOGS_DIR) / f"{process_name}.log"
