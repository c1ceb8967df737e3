import json
import logging
import sys

from colorlog import ColoredFormatter

LOGGER_NAME = "cost_estimator"


def setup_logger(debug_mode=False):
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if debug_mode else logging.INFO)

    # Create console handler
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.DEBUG if debug_mode else logging.INFO)

    # Create colored formatter
    formatter = ColoredFormatter(
        "%(log_color)s[%(levelname)s] %(message)s",
        log_colors={
            "DEBUG":    "cyan",
            "INFO":     "green",
            "WARNING":  "yellow",
            "ERROR":    "red",
            "CRITICAL": "red,bg_white",
        }
    )
    handler.setFormatter(formatter)

    if not logger.handlers:
        logger.addHandler(handler)
    else:
        for existing in logger.handlers:
            existing.setLevel(handler.level)

    return logger


# Logger defaults to INFO unless reconfigured from config.json.
DEBUG_MODE = False
logger = setup_logger(debug_mode=DEBUG_MODE)


def configure_logger_from_file(config_path):
    """
    Switch the logger to DEBUG when the config file says so.

    JSON Example
    -------------
    {
        "mode": "DEBUG"
    }
    """
    global DEBUG_MODE
    try:
        with open(config_path) as f:
            config = json.load(f)
        DEBUG_MODE = config.get("mode", "").upper() == "DEBUG"
        setup_logger(debug_mode=DEBUG_MODE)
        if DEBUG_MODE:
            logger.debug("Debug mode is active.")
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to configure logger from file: {e}. Using default settings.")
