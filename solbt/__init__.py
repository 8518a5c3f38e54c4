#!filepath: solbt/__init__.py

from .utils.logger import Logging, logs
from .utils.datetime_utils import DateTimeUtils

datetime_utils = DateTimeUtils

__all__ = [
    "logs", "Logging",
    "datetime_utils",
]
