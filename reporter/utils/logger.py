"""Central logger configuration for reporter modules."""
import logging


def configure(level=logging.INFO):
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )


def get_logger(name):
    return logging.getLogger(name)
