"""Conversion between parameter values and their text form.

Parameter defaults are declared as strings and converted to the parameter's
declared type before extraction. :class:`DefaultValueConverter` is the
built-in converter; callers may install their own through
:meth:`Reporting.set_value_converter` as long as it provides the same two
methods.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
import logging
from typing import Any, Protocol

import pandas as pd
import yaml

from .exceptions import ValueConversionError

logger = logging.getLogger(__name__)

_TRUE_STRINGS = frozenset({"true", "1", "yes", "y", "on"})
_FALSE_STRINGS = frozenset({"false", "0", "no", "n", "off"})


class ValueConverter(Protocol):
    """Contract for value converters."""

    def convert_from_string(self, target_type: type, value: str) -> Any: ...

    def convert_to_string(self, value: Any) -> str: ...


class DefaultValueConverter:
    """Convert strings to common Python types and back.

    Supported target types are ``str``, ``bool``, ``int``, ``float``,
    :class:`~decimal.Decimal`, :class:`~datetime.date`,
    :class:`~datetime.datetime`, :class:`~enum.Enum` subclasses, ``list`` and
    ``dict``. Dates are parsed with :func:`pandas.Timestamp`, so ISO dates as
    well as most common date spellings are accepted. Lists and dicts are read
    as YAML flow collections (``"[a, b]"``, ``"{key: 1}"``). Any other type is
    called with the string as its only argument.

    The converter holds no state and is safe to share between threads.
    """

    def convert_from_string(self, target_type: type, value: str) -> Any:
        """Convert a string to ``target_type``.

        Args:
            target_type: Type to convert to.
            value: Text to convert.

        Returns:
            Converted value.

        Raises:
            ValueConversionError: If the text is not a valid ``target_type`` value.
        """
        try:
            return self._convert(target_type, value)
        except ValueConversionError:
            raise
        except (ValueError, TypeError, ArithmeticError, yaml.YAMLError) as e:
            raise ValueConversionError(target_type, value, e) from e

    def convert_to_string(self, value: Any) -> str:
        """Render a value as text.

        ``None`` becomes an empty string, dates use ISO format, enums their
        value and collections YAML flow style.
        """
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if isinstance(value, Enum):
            return str(value.value)
        if isinstance(value, (list, tuple, dict)):
            return yaml.safe_dump(
                list(value) if isinstance(value, tuple) else value,
                default_flow_style=True,
                sort_keys=False,
            ).strip()
        return str(value)

    def _convert(self, target_type: type, value: str) -> Any:
        if target_type is str:
            return value

        text = value.strip()
        if target_type is bool:
            lowered = text.lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
            raise ValueConversionError(target_type, value)
        if target_type is int:
            return int(text)
        if target_type is float:
            return float(text)
        if target_type is Decimal:
            return Decimal(text)
        if target_type in (datetime, date) and not text:
            raise ValueConversionError(target_type, value)
        if target_type is datetime:
            return pd.Timestamp(text).to_pydatetime()
        if target_type is date:
            return pd.Timestamp(text).date()
        if isinstance(target_type, type) and issubclass(target_type, Enum):
            return self._convert_enum(target_type, text)
        if target_type in (list, dict):
            loaded = yaml.safe_load(text) if text else target_type()
            if not isinstance(loaded, target_type):
                raise ValueConversionError(target_type, value)
            return loaded

        logger.debug(f"Converting [{value}] with constructor of {target_type!r}")
        return target_type(value)

    @staticmethod
    def _convert_enum(enum_type: type, text: str) -> Any:
        try:
            return enum_type[text]  # type: ignore[index]
        except KeyError:
            return enum_type(text)
