import logging
import os
from typing import Optional


ROOT_LOGGER = "patoune_catalog"

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def _coerce_level(value: Optional[str]) -> int:
    if isinstance(value, str):
        return _LEVELS.get(value.upper().strip(), logging.INFO)
    return logging.INFO


def _configure_root() -> logging.Logger:
    """Attach the stdout (and optional LOG_FILE) handlers to the package logger once."""
    root = logging.getLogger(ROOT_LOGGER)
    if root.handlers:
        return root

    level = _coerce_level(os.environ.get("LOG_LEVEL", "INFO"))
    root.setLevel(level)
    formatter = logging.Formatter(
        fmt="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    sh = logging.StreamHandler()
    sh.setFormatter(formatter)
    root.addHandler(sh)

    log_file = os.environ.get("LOG_FILE")
    if log_file:
        try:
            fh = logging.FileHandler(log_file, encoding="utf-8")
            fh.setFormatter(formatter)
            root.addHandler(fh)
        except OSError:
            root.warning("LOG_FILE could not be opened; continuing without file logging")

    # Catalog output stays off the host application's root logger
    root.propagate = False
    return root


def get_logger(name: str) -> logging.Logger:
    """Return the `patoune_catalog.<name>` logger.

    Every component logger is a child of the package logger, which owns the
    handlers, so LOG_LEVEL applies to the whole package and no handler is
    ever added twice.
    """
    _configure_root()
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
