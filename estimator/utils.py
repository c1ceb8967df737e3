import math
import traceback
from decimal import Decimal

import estimator.logger as logging_config
from estimator.logger import logger


def get_debug_mode() -> bool:
    return logging_config.DEBUG_MODE


def print_stack_trace():
    """
    Print the stack trace of the exception being handled if debug mode is enabled.
    """
    if get_debug_mode():
        error_msg = traceback.format_exc()
        logger.error(error_msg)


def is_number(value) -> bool:
    """True for ints and floats, False for bools and everything else."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_number(value, default: float = 0.0) -> float:
    """
    Coerce a context value into a float.

    Numeric strings are parsed, everything unparseable falls back to
    ``default``.
    """
    if is_number(value):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return default
    return default


def format_number(value: float) -> str:
    """
    Render a number in plain positional notation.

    ``str(0.00001)`` gives ``1e-05`` which would not survive expression
    sanitising, so the repr is routed through Decimal instead.
    """
    if not math.isfinite(value):
        return "0"
    text = format(Decimal(repr(float(value))), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"
