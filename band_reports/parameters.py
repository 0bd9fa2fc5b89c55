"""Resolution of caller-supplied parameters against a report's declarations.

The resolver applies declared defaults, rejects missing required values and
guarantees that every declared alias is present in the result, so that
downstream stages only ever need ``None`` checks.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from .conversion import DefaultValueConverter, ValueConverter
from .exceptions import MissingRequiredParameterError
from .structure import Report, ReportParameter

logger = logging.getLogger(__name__)


class ParameterResolver:
    """Validate and normalize a parameter map for one report run.

    Attributes:
        converter: Converter used to turn string defaults into typed values.
    """

    def __init__(self, converter: Optional[ValueConverter] = None):
        """Initialize ParameterResolver.

        Args:
            converter: Value converter (uses :class:`DefaultValueConverter` if None).
        """
        self.converter: ValueConverter = converter or DefaultValueConverter()

    def resolve(self, report: Report, params: Mapping[str, Any]) -> Dict[str, Any]:
        """Resolve parameters for a report.

        Only declared parameters are carried into the result; caller entries
        that no parameter declares are dropped. The caller's mapping is not
        modified.

        Args:
            report: Report whose declared parameters are applied.
            params: Caller-supplied values keyed by parameter alias.

        Returns:
            New mapping whose keys are exactly the declared aliases; values
            may be ``None``.

        Raises:
            MissingRequiredParameterError: If a required parameter has no
                value and no usable default.
            ValueConversionError: If a default cannot be converted.
        """
        resolved: Dict[str, Any] = {}
        for parameter in report.parameters:
            alias = parameter.alias
            value = params.get(alias)

            if value is None:
                value = self._default_value(parameter)
                if value is not None:
                    logger.debug(f"Parameter [{alias}] defaulted to {value!r}")

            if parameter.required and value is None:
                raise MissingRequiredParameterError(alias)

            resolved[alias] = value

        ignored = set(params) - set(resolved)
        if ignored:
            logger.debug(f"Ignoring undeclared parameters {sorted(ignored)}")

        return resolved

    def _default_value(self, parameter: ReportParameter) -> Any:
        if parameter.kind == "with_default" and parameter.default_value is not None:
            return self.converter.convert_from_string(
                parameter.parameter_class, parameter.default_value
            )
        return None
