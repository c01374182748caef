"""
Structured logging for wirelattice.

structlog renders both the event-style records of the inflator and pipeline
(``logger.info("inflate_complete", num_faces=2404)``) and the %-style
records of the geometry helpers and third-party libraries, so a run produces
one consistent stream.

Usage::

    from wirelattice.core.logging import configure_logging, get_logger

    configure_logging(level="DEBUG", json_output=True)
    logger = get_logger(__name__)
    logger.info("phantom_network_built", phantom_edges=96)
"""

import logging
import sys
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import structlog

# Libraries that log every boolean, load and export at INFO
NOISY_LIBRARIES = ("trimesh", "shapely")

SHARED_PROCESSORS: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.UnicodeDecoder(),
]


def _renderer(json_output: bool) -> structlog.types.Processor:
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
    quiet_libraries: bool = True,
) -> None:
    """
    Route structlog and stdlib logging to stderr (and optionally a file).

    The CLI calls this once per invocation; library users call it themselves
    or leave logging unconfigured.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: One JSON object per line instead of console lines
        log_file: Extra file that receives the same records
        quiet_libraries: Hold trimesh/shapely at WARNING unless level is DEBUG
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=SHARED_PROCESSORS,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(json_output),
        ],
    )
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    library_level = logging.WARNING if quiet_libraries and log_level > logging.DEBUG else log_level
    for name in NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(library_level)

    structlog.configure(
        processors=[*SHARED_PROCESSORS, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """structlog logger for a module; pass ``__name__``."""
    return structlog.get_logger(name)


@contextmanager
def log_context(**values: Any) -> Iterator[None]:
    """
    Bind key/value pairs to every record emitted inside the block.

    The pipeline tags all inflation records with the wire file::

        with log_context(wire="cube.wire"):
            inflate(network, config)
    """
    with structlog.contextvars.bound_contextvars(**values):
        yield
