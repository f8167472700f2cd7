import logging
import sys

from saas_admin.core import config


_handler: logging.Handler | None = None


def get_logger(name: str) -> logging.Logger:
    """Return a module logger sharing one stream handler on the package root."""
    global _handler
    root = logging.getLogger("saas_admin")
    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
        root.addHandler(_handler)
        root.setLevel(config.LOG_LEVEL)
    return logging.getLogger(name)
