from . import config, logger
