"""
structlog setup for applications using railflow.

railflow's modules log through the standard library under the "railflow"
namespace and stay silent until an application configures logging. This
helper configures structlog and routes those records through structlog's
ProcessorFormatter, so flow events render like the rest of the application:

  - console: colored, human-readable output (development)
  - json:    JSON lines (production)

    from railflow.logging_config import configure_logging
    configure_logging()          # reads RAILFLOW_* settings
"""

from __future__ import annotations

import logging
import sys

import structlog

from railflow.config import RailflowSettings, apply_settings

_HANDLER_NAME = "railflow"

_SHARED_PROCESSORS: list = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.processors.add_log_level,
    structlog.processors.StackInfoRenderer(),
    structlog.processors.TimeStamper(fmt="iso"),
]


def _renderer(log_format: str) -> structlog.typing.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def configure_logging(settings: RailflowSettings | None = None) -> None:
    """
    Configure structlog and attach a structlog-rendered handler to "railflow".

    With trace_steps enabled the step interpreter logs at DEBUG regardless
    of the configured level.
    """
    settings = apply_settings(settings)
    level = getattr(logging, settings.log_level, logging.INFO)

    structlog.configure(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.dev.set_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_SHARED_PROCESSORS,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(settings.log_format),
            ],
        )
    )

    root = logging.getLogger("railflow")
    for existing in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    logging.getLogger("railflow.dsl").setLevel(logging.DEBUG if settings.trace_steps else level)
