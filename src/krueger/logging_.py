"""Logging setup for krueger: a rotating log file, plus the console in headless mode."""

import logging
from logging.handlers import RotatingFileHandler

from krueger.paths import ensure_app_dirs, log_path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def setup_logging(debug: bool = False, console: bool = False) -> None:
    """
    Configure the root logger.

    Logs always go to a rotating file. A console handler is only added when
    nothing else owns the terminal (headless mode).
    """
    root = logging.getLogger()
    level = logging.DEBUG if debug else logging.INFO
    root.setLevel(level)

    if root.handlers:
        return

    fmt = logging.Formatter(LOG_FORMAT)

    if console:
        ch = logging.StreamHandler()
        ch.setLevel(level)
        ch.setFormatter(fmt)
        root.addHandler(ch)

    try:
        ensure_app_dirs()
        fh = RotatingFileHandler(str(log_path()), maxBytes=2_000_000, backupCount=3, encoding="utf-8")
    except OSError as exc:
        logging.getLogger(__name__).warning("File logging disabled: %s", exc)
        return
    fh.setLevel(level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    # asyncio is chatty at DEBUG
    logging.getLogger("asyncio").setLevel(logging.WARNING)
