"""structlog 配置模块

dev 模式：带颜色的可读输出（CLI 默认）
json 模式：每行一条 JSON，便于日志采集
"""

import logging
import os
import sys

import structlog


def setup_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """初始化 structlog，输出到 stderr

    参数为 None 时读取环境变量：
    - GUARDIAN_LOG_FORMAT: "json" 或 "dev"（默认）
    - GUARDIAN_LOG_LEVEL: 日志级别（默认 INFO）
    """
    log_format = log_format or os.environ.get("GUARDIAN_LOG_FORMAT", "dev")
    log_level = log_level or os.environ.get("GUARDIAN_LOG_LEVEL", "INFO")

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer: structlog.types.Processor
    if log_format == "json":
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    # aiosqlite 的调试日志过于冗长
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
