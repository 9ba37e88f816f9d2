import logging
import sys

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(log_level: str = "INFO") -> None:
    """Setup logging configuration for the yaymon loggers."""
    logger = logging.getLogger("yaymon")
    logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(console_handler)

    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    logger.propagate = False
