import logging

from .config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = LOG_LEVEL):
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # aio_pika/aiormq are chatty at INFO about reconnects
    logging.getLogger("aiormq").setLevel(logging.WARNING)
    logging.getLogger("aio_pika").setLevel(logging.WARNING)
