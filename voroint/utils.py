"""Utility wrappers and functions

Description:
    DEBUG environment switch and a timing decorator for the command-line
    driver. Logging itself is configured once in voroint/__init__.py.

Requirements:
    - Python 3.x
"""

import logging
import os
import time
from functools import wraps

logger = logging.getLogger("voroint")


def debug_mode():
    """True when the DEBUG=1 environment variable is set."""
    return os.environ.get("DEBUG", "0") == "1"


def timeit(level=logging.DEBUG, unit='s'):
    """Decorator to measure and log execution time of a function.

    Args:
        level (int): Logging level (default: logging.DEBUG)
        unit (str): Time unit to display. Options:
            - 'ms': milliseconds
            - 's': seconds (default)
            - 'm': minutes
            - 'auto': milliseconds under a second, minutes over a minute
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            result = func(*args, **kwargs)
            elapsed = time.perf_counter() - start_time
            if unit == 'ms' or (unit == 'auto' and elapsed < 1):
                shown, unit_str = elapsed * 1000, 'milliseconds'
            elif unit == 'm' or (unit == 'auto' and elapsed > 60):
                shown, unit_str = elapsed / 60, 'minutes'
            else:
                shown, unit_str = elapsed, 'seconds'
            logger.log(level, "Function '%s.%s' executed in %.6f %s",
                       func.__module__, func.__name__, shown, unit_str)
            return result
        return wrapper
    return decorator
