"""structlog setup for curvetrade.

Every record passes through merge_contextvars. A trade binds ``market`` and
``direction`` for its whole run, then ``tx_hash`` once the transaction is
broadcast, so lines logged by the executor and the chain reader during a
trade carry the trade they belong to.
Bindings live in contextvars and are scoped to the coroutine that made them.
"""

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager

import structlog


def setup_logging(log_level: str = "INFO") -> None:
    """Configure structlog and route stdlib logging through it.

    LOG_FORMAT selects the renderer: "json" for machine-readable output,
    anything else (default "console") for the human-readable dev renderer.
    """
    log_format = os.environ.get("LOG_FORMAT", "console").lower()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

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
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # web3 request logging is very chatty at DEBUG
    logging.getLogger("web3").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger with the given name."""
    return structlog.get_logger(name)


@contextmanager
def trade_context(**fields: object) -> Iterator[None]:
    """Bind trade fields (market, direction, tx_hash) for the enclosed block.

    Nested blocks add fields; each restores the previous bindings on exit.
    """
    with structlog.contextvars.bound_contextvars(**fields):
        yield
