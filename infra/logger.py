import logging
from typing import Optional


_logger: Optional[logging.Logger] = None


def get_logger(name: str = "tablero") -> logging.Logger:
    """Logger único del proceso; Streamlit re-ejecuta el script y no hay que duplicar handlers."""
    global _logger
    if _logger is not None:
        return _logger

    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)

    if not logger.handlers:
        ch = logging.StreamHandler()
        ch.setLevel(logging.DEBUG)
        fmt = logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        ch.setFormatter(fmt)
        logger.addHandler(ch)

    _logger = logger
    return logger
