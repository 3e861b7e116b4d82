"""Structlog configuration bridged onto stdlib logging."""

import json
import logging
from typing import Any

import structlog
from structlog.contextvars import merge_contextvars
from structlog.dev import ConsoleRenderer
from structlog.processors import JSONRenderer, TimeStamper, add_log_level
from structlog.stdlib import ProcessorFormatter

from app.config import get_log_json, get_log_level


def _get_renderer(json_logs: bool) -> Any:
    if not json_logs:
        return ConsoleRenderer(colors=False)

    def _dumps(obj, default=None, **kwargs):
        return json.dumps(obj, ensure_ascii=False, default=default, **kwargs)

    return JSONRenderer(serializer=_dumps)


def configure_logging(level: str | None = None, json_logs: bool | None = None) -> None:
    level = level or get_log_level()
    json_logs = get_log_json() if json_logs is None else json_logs

    shared_pre_chain: list[Any] = [
        merge_contextvars,
        add_log_level,
        TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[*shared_pre_chain, ProcessorFormatter.wrap_for_formatter],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = ProcessorFormatter(
        foreign_pre_chain=shared_pre_chain,
        processors=[ProcessorFormatter.remove_processors_meta, _get_renderer(json_logs)],
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
