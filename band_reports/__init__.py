"""band_reports - template-based report execution engine.

Turns a report definition, a template and a set of parameters into a
rendered document and an output file name.
"""

from ._version import __version__
from .band_data import BandData
from .config import LoggingConfig, ReportingConfig
from .conversion import DefaultValueConverter
from .exceptions import (
    DataLoadingError,
    InvalidInputError,
    InvalidPostProcessorError,
    MissingRequiredParameterError,
    OutputNamingBandNotFoundError,
    OutputNamingFieldNotFoundError,
    PostProcessorInstantiationError,
    PostProcessorNotFoundError,
    RenderingError,
    ReportingError,
    ReportingInterruptedError,
    UnsupportedFormatError,
    UnsupportedLoaderError,
    ValidationError,
    ValueConversionError,
)
from .extraction import DefaultDataExtractor, ParameterDataLoader, ReportLoaderFactory
from .naming import resolve_output_file_name
from .parameters import ParameterResolver
from .post_processing import PostProcessorRegistry, ReportPostProcessor
from .rendering import (
    AbstractFormatter,
    CsvFormatter,
    FormatterFactoryInput,
    JinjaFormatter,
    RenderDispatcher,
    ReportFormatterFactory,
    XlsxFormatter,
)
from .reporting import ExecutionStage, Reporting, RunParams
from .structure import (
    BandDefinition,
    DefaultValueParameter,
    PlainParameter,
    Report,
    ReportFieldFormat,
    ReportOutputDocument,
    ReportOutputType,
    ReportQuery,
    ReportTemplate,
)

__all__ = [
    "__version__",
    # Core
    "Reporting",
    "RunParams",
    "ExecutionStage",
    # Structure
    "BandData",
    "BandDefinition",
    "DefaultValueParameter",
    "PlainParameter",
    "Report",
    "ReportFieldFormat",
    "ReportOutputDocument",
    "ReportOutputType",
    "ReportQuery",
    "ReportTemplate",
    # Collaborators
    "AbstractFormatter",
    "CsvFormatter",
    "DefaultDataExtractor",
    "DefaultValueConverter",
    "FormatterFactoryInput",
    "JinjaFormatter",
    "ParameterDataLoader",
    "ParameterResolver",
    "PostProcessorRegistry",
    "RenderDispatcher",
    "ReportFormatterFactory",
    "ReportLoaderFactory",
    "ReportPostProcessor",
    "XlsxFormatter",
    "resolve_output_file_name",
    # Configuration
    "LoggingConfig",
    "ReportingConfig",
    # Errors
    "DataLoadingError",
    "InvalidInputError",
    "InvalidPostProcessorError",
    "MissingRequiredParameterError",
    "OutputNamingBandNotFoundError",
    "OutputNamingFieldNotFoundError",
    "PostProcessorInstantiationError",
    "PostProcessorNotFoundError",
    "RenderingError",
    "ReportingError",
    "ReportingInterruptedError",
    "UnsupportedFormatError",
    "UnsupportedLoaderError",
    "ValidationError",
    "ValueConversionError",
]
