"""Configuration management using Pydantic v2 models.

Sub-modules:
    core: :class:`ReportingConfig`, the engine configuration.
    reporting: :class:`LoggingConfig`.
    utils: Dictionary merging and dotted-reference import helpers.
"""

from .core import ReportingConfig
from .reporting import LoggingConfig

__all__ = [
    "LoggingConfig",
    "ReportingConfig",
]
