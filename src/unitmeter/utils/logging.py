"""structlog wiring for unitmeter.

Aggregation logs carry Decimal quantities and chain identifiers.  Decimals are
rendered as strings so the JSON output keeps every billed digit, and
:func:`bind_chain` attaches the chain being processed to every line logged
inside it, including lines from the engine and the chain store.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal
from typing import TYPE_CHECKING, Any, cast

import structlog

from unitmeter.core.config import MeteringConfig

if TYPE_CHECKING:
    from unitmeter.billing.models import ChainKey


def _render_decimals(
    _logger: Any, _method: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    for key, value in event_dict.items():
        if isinstance(value, Decimal):
            event_dict[key] = str(value)
    return event_dict


def configure_logging(config: MeteringConfig | None = None) -> None:
    """Route structlog through stdlib logging using *config*'s level and format.

    ``json_logs`` selects JSON lines for log shipping; otherwise the console
    renderer is used.  Calling it again replaces the previous setup.

    Args:
        config: Metering settings; defaults when omitted.
    """
    config = config or MeteringConfig()
    log_level = logging.getLevelName(config.log_level)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _render_decimals,
    ]

    renderer: structlog.types.Processor
    if config.json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)


@contextmanager
def bind_chain(chain: ChainKey, **extra: Any) -> Iterator[None]:
    """Bind *chain* (and *extra*) to every log line emitted inside the block."""
    with structlog.contextvars.bound_contextvars(
        subscription=chain.external_subscription_id,
        metric=chain.metric_code,
        group=chain.group_id,
        **extra,
    ):
        yield


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a named structlog logger."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
