"""
structlog setup shared by the API and the CLI.

Domain modules log through the standard library; their records are handed
to the same structlog renderer, so a tick or a health check run produces
one consistent stream: JSON lines in production, colored console output
elsewhere. A request id bound with ``bind_context`` shows up on every
line logged while the request is handled.
"""

import logging
import sys

import structlog
from structlog.types import Processor

from regtrack.config.settings import get_settings

# HTTP client chatter from every probe and job call
_NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")

HANDLER_NAME = "regtrack"


def _renderer(production: bool) -> Processor:
    if production:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def setup_logging() -> None:
    """
    Route structlog and stdlib logging to stdout through one renderer.

    Call once at process start (``regtrack serve`` and every CLI command).
    """
    settings = get_settings()

    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    structlog.configure(
        processors=pre_chain + [
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    final: list[Processor] = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if settings.is_production:
        final.append(structlog.processors.format_exc_info)
    final.append(_renderer(settings.is_production))

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain + [structlog.stdlib.ExtraAdder()],
        processors=final,
    ))

    # Replace a handler from an earlier call, leave any others in place
    root = logging.getLogger()
    root.handlers = [h for h in root.handlers if h.get_name() != HANDLER_NAME]
    root.addHandler(handler)
    root.setLevel(settings.log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_context(**kwargs) -> None:
    """Attach key/value pairs to every log line in the current context."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
