"""Root logger configuration for the command-line host."""

import logging


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO"):
    """
    Configure the root logger and the pocketserve logger level.

    Embedding applications normally configure logging themselves and
    should not call this; the library only ever uses module loggers.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
    )

    logging.getLogger("pocketserve").setLevel(numeric_level)
