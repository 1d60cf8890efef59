"""Logging configuration."""

import logging
import sys
from typing import TextIO

from rich.console import Console
from rich.logging import RichHandler

PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO", environment: str = "development", stream: TextIO | None = None) -> None:
    """
    Configure root logging for the gateway.

    Development gets rich console output; other environments get one plain
    line per record. Output always goes to stderr unless another stream is
    given, so stdout stays free for the stdio transport.

    Parameters
    ----------
    level : str
        Log level name
    environment : str
        Deployment environment
    stream : TextIO | None
        Destination stream (default: stderr)

    """
    stream = stream or sys.stderr
    handler: logging.Handler
    if environment == "development":
        handler = RichHandler(console=Console(file=stream), rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    else:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
