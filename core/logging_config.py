import logging
from logging import Logger

DEFAULT_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
DEFAULT_DATEFMT = "%H:%M:%S"
ROOT_LOGGER_NAME = "token_automaton"


def setup_logging(level: int = logging.INFO) -> Logger:
    logging.basicConfig(level=level, format=DEFAULT_FORMAT, datefmt=DEFAULT_DATEFMT)
    # Library modules log under their own package names.
    for name in ("automaton", "core", "rules", "agents"):
        logging.getLogger(name).setLevel(level)
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    logger.debug("Logging initialized.")
    return logger
