"""Logging setup shared by the API process and the sweep worker."""

import logging

from haven_forum.core.settings import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure the root logger once for the running process."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
    )
    # SQL echo is controlled by SQL_DEBUG; keep the engine logger quiet otherwise.
    if not settings.sql_debug:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
