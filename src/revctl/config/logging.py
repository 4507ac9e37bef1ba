"""Log routing for revctl.

Everything goes to stderr so stdout stays reserved for command results
(tables, ``--quiet`` ids, ``--json`` documents). Library modules log
through plain :func:`logging.getLogger`; structlog formats those records
and its own events alike, as console lines or as JSON lines with
``--log-json``.
"""

from __future__ import annotations

import logging
import sys

import structlog

# HTTP stacks used by the tracker client; their DEBUG chatter drowns
# revctl's own git command trace under -v.
_NOISY_LOGGERS = ("urllib3", "requests")


def _renderer(log_json: bool) -> structlog.types.Processor:
    if log_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Route structlog and stdlib records through one stderr handler.

    Safe to call more than once; the root handler is replaced each time.

    Args:
        verbose: Lower the ``revctl`` loggers to DEBUG (git commands,
            notes writes, sync rounds). Otherwise only WARNING and up.
        log_json: Emit one JSON object per record.
    """
    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_json),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger("revctl").setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
