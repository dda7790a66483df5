"""日志配置 -- CLI 与 HTTP 服务共用的 structlog 设置

环境变量:
    GRAVE_SCANNER_LOG_FORMAT: "dev"（默认，可读输出）或 "json"（结构化输出）
    GRAVE_SCANNER_LOG_LEVEL: 标准级别名（默认 INFO），无法识别时回退到 INFO

日志统一写到 stderr；CLI 的 stdout 只留给命令结果。
"""

import logging
import os
import sys

import structlog

LOG_FORMAT_ENV = "GRAVE_SCANNER_LOG_FORMAT"
LOG_LEVEL_ENV = "GRAVE_SCANNER_LOG_LEVEL"


def resolve_log_level() -> tuple[int, str | None]:
    """解析日志级别

    Returns:
        (级别数值, 无法识别的原始值)；原始值合法时第二项为 None
    """
    raw = os.environ.get(LOG_LEVEL_ENV, "")
    if not raw:
        return logging.INFO, None
    level = logging.getLevelNamesMapping().get(raw.strip().upper())
    if level is None:
        return logging.INFO, raw
    return level, None


def use_json() -> bool:
    return os.environ.get(LOG_FORMAT_ENV, "dev") == "json"


def shared_processors() -> list[structlog.types.Processor]:
    """structlog 事件与标准库日志共用的前置处理器"""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def renderer(colors: bool) -> structlog.types.Processor:
    if use_json():
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer(colors=colors)


def warn_invalid_level(raw: str | None) -> None:
    if raw is not None:
        structlog.get_logger().warning("invalid_log_level", value=raw, fallback="INFO")


def setup_cli_logging() -> None:
    """CLI 日志：直接写 stderr，级别由包装类过滤"""
    level, invalid = resolve_log_level()

    processors = shared_processors()
    if use_json():
        processors.append(structlog.processors.format_exc_info)
    processors.append(renderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        # 每次输出时取当前的 sys.stderr
        logger_factory=lambda *args: structlog.PrintLogger(sys.stderr),
        cache_logger_on_first_use=False,
    )
    warn_invalid_level(invalid)
