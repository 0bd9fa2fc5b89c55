"""Exception hierarchy for report execution.

Every failure raised by the execution pipeline derives from
:class:`ReportingError`. The executor appends the report name to the
message of these errors before they leave :meth:`Reporting.run_report`,
with two exceptions: :class:`ValidationError`, whose message is shown to
end users as-is, and :class:`ReportingInterruptedError`, which signals a
cancellation and is propagated verbatim.

Examples:
    Distinguishing cancellation from failure::

        try:
            document = reporting.run_report(RunParams(report))
        except ReportingInterruptedError:
            logger.info("Report cancelled")
        except ReportingError as e:
            logger.error(f"Report failed during {e.stage}: {e}")
"""

from typing import Any, Optional


class ReportingError(Exception):
    """Base class for all report execution errors.

    Attributes:
        message: Message without report details.
        report_details: Suffix added by the executor, e.g. ``" Report name [Invoice]"``.
        stage: Name of the execution stage that was active when the error was raised.
    """

    def __init__(self, message: str = "", cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.report_details: Optional[str] = None
        self.stage: Optional[str] = None
        if cause is not None:
            self.__cause__ = cause

    def set_report_details(self, report_details: str) -> None:
        """Attach report identification to the message.

        Args:
            report_details: Text appended to the error message.
        """
        self.report_details = report_details

    def __str__(self) -> str:
        if self.report_details:
            return f"{self.message}{self.report_details}"
        return self.message


class InvalidInputError(ReportingError, ValueError):
    """Raised when a required invocation argument is missing."""


class ValidationError(ReportingError):
    """Caller-facing validation failure whose message must stay unmodified."""

    def set_report_details(self, report_details: str) -> None:
        # Shown to end users; keep the original message.
        return None


class ReportingInterruptedError(ReportingError):
    """Raised by a collaborator when report execution has been cancelled."""

    def set_report_details(self, report_details: str) -> None:
        return None


class MissingRequiredParameterError(ReportingError, ValueError):
    """Raised when a required parameter has no value after default resolution.

    Attributes:
        alias: Alias of the missing parameter.
    """

    def __init__(self, alias: str) -> None:
        super().__init__(f'Required report parameter "{alias}" not found')
        self.alias = alias


class ValueConversionError(ReportingError, ValueError):
    """Raised when a parameter default cannot be converted to its declared type.

    Attributes:
        target_type: Type the value was converted to.
        value: Raw string value.
    """

    def __init__(self, target_type: Any, value: str, cause: Optional[BaseException] = None) -> None:
        type_name = getattr(target_type, "__name__", str(target_type))
        super().__init__(f"Cannot convert value [{value}] to type [{type_name}]", cause)
        self.target_type = target_type
        self.value = value


class DataLoadingError(ReportingError):
    """Raised when band data cannot be loaded from a data source."""


class UnsupportedLoaderError(DataLoadingError):
    """Raised when no data loader is registered for a query's loader type."""


class RenderingError(ReportingError):
    """Raised when a document cannot be rendered or written."""


class UnsupportedFormatError(RenderingError):
    """Raised when no formatter is registered for a template extension."""


class PostProcessorNotFoundError(ReportingError):
    """Raised when a post-processor identifier is not registered."""


class InvalidPostProcessorError(ReportingError):
    """Raised when a resolved post-processor lacks ``post_process_report``."""


class PostProcessorInstantiationError(ReportingError):
    """Raised when a registered post-processor cannot be constructed."""


class OutputNamingBandNotFoundError(ReportingError):
    """Raised when the band named in an output pattern does not exist.

    Attributes:
        band_name: Band referenced by the pattern.
    """

    def __init__(self, band_name: str) -> None:
        super().__init__(
            f"No data in band [{band_name}] found. "
            "This band is used for output file name generation."
        )
        self.band_name = band_name


class OutputNamingFieldNotFoundError(ReportingError):
    """Raised when the field named in an output pattern has no value.

    Attributes:
        band_name: Band referenced by the pattern.
        field_name: Field referenced by the pattern.
    """

    def __init__(self, band_name: str, field_name: str) -> None:
        super().__init__(
            f"No data in band [{band_name}] parameter [{field_name}] found. "
            "This band and parameter is used for output file name generation."
        )
        self.band_name = band_name
        self.field_name = field_name
