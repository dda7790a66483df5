"""HTTP 服务日志配置

structlog 事件经标准库 logging 输出，uvicorn 自身的日志也走同一个 formatter。
级别与格式的解析和 CLI 共用 grave_scanner.core.log_config。
请求日志由 LoggingMiddleware 输出，uvicorn 的 access 日志只保留 WARNING 以上。
"""

import logging
import sys

import structlog
from grave_scanner.core.log_config import (
    renderer,
    resolve_log_level,
    shared_processors,
    use_json,
    warn_invalid_level,
)

_HANDLER_NAME = "grave-scanner"


def setup_logging() -> None:
    """初始化 structlog + 标准库 logging（可重复调用）"""
    level, invalid = resolve_log_level()
    pre_chain = [*shared_processors(), structlog.stdlib.add_logger_name]

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    final: list[structlog.types.Processor] = [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
    ]
    if use_json():
        final.append(structlog.processors.format_exc_info)
    final.append(renderer(colors=sys.stderr.isatty()))

    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processors=final, foreign_pre_chain=pre_chain)
    )

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    logging.getLogger("uvicorn.access").setLevel(max(level, logging.WARNING))
    warn_invalid_level(invalid)
