import logging
import sys

from rarctool.config import settings


def configure_logging(level: str | int | None = None) -> None:
    """Send log records to stderr in the package's standard format."""
    logging.basicConfig(
        level=level if level is not None else settings.log_level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )
