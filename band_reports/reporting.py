"""Report execution.

:class:`Reporting` runs one report request from start to finish:

1. validate the invocation arguments,
2. resolve parameters against the report's declarations,
3. extract band data into a fresh root band,
4. render the template (with optional post-processing),
5. resolve the output file name.

Every :class:`~band_reports.exceptions.ReportingError` leaving a run is
logged and annotated with the report name; validation errors keep their
message and cancellations are propagated untouched.

Examples:
    Buffered run::

        reporting = Reporting()
        document = reporting.run_report(
            RunParams(report).template_code("DEFAULT").param("customer", "ACME")
        )
        Path(document.document_name).write_bytes(document.content)

    Streaming run::

        with open("out.xlsx", "wb") as f:
            document = reporting.run_report(RunParams(report), f)
"""

from enum import Enum
import io
import logging
from typing import Any, BinaryIO, Dict, Mapping, Optional, TypeVar, Union

from .band_data import BandData
from .config import ReportingConfig
from .conversion import DefaultValueConverter, ValueConverter
from .exceptions import InvalidInputError, ReportingError, ReportingInterruptedError
from .extraction import DataExtractor, DefaultDataExtractor, ReportLoaderFactory
from .naming import resolve_output_file_name
from .parameters import ParameterResolver
from .post_processing import PostProcessorRegistry
from .rendering import RenderDispatcher, ReportFormatterFactory
from .structure import Report, ReportOutputDocument, ReportOutputType, ReportTemplate

_T = TypeVar("_T")


class ExecutionStage(Enum):
    """Stages of a report run."""

    RESOLVING_PARAMETERS = "resolving_parameters"
    EXTRACTING_DATA = "extracting_data"
    RENDERING = "rendering"
    POST_PROCESSING = "post_processing"
    NAMING_OUTPUT = "naming_output"


class RunParams:
    """Builder for a report run request.

    Attributes:
        report: Report to run.
        report_template: Template to render; the report's default template initially.
        requested_output_type: Output type requested by the caller, if any.
        parameters: Caller-supplied parameter values.
    """

    def __init__(self, report: Report):
        self.report = report
        self.report_template: Optional[ReportTemplate] = (
            report.get_template() if report is not None else None
        )
        self.requested_output_type: Optional[ReportOutputType] = None
        self.parameters: Dict[str, Any] = {}

    def template_code(self, code: str) -> "RunParams":
        """Select the template by code.

        Raises:
            InvalidInputError: If the report has no template with that code.
        """
        template = self.report.get_template(code)
        if template is None:
            raise InvalidInputError(f"Report template not found for code [{code}]")
        self.report_template = template
        return self

    def template(self, template: ReportTemplate) -> "RunParams":
        """Use the given template."""
        self.report_template = template
        return self

    def output_type(self, output_type: Union[ReportOutputType, str]) -> "RunParams":
        """Request an output type, by member or identifier."""
        if isinstance(output_type, str):
            output_type = ReportOutputType.from_id(output_type)
        self.requested_output_type = output_type
        return self

    def params(self, params: Mapping[str, Any]) -> "RunParams":
        """Replace the parameter values."""
        self.parameters = dict(params)
        return self

    def param(self, key: str, value: Any) -> "RunParams":
        """Set one parameter value."""
        self.parameters[key] = value
        return self


class _CapturingBuffer(io.BytesIO):
    """In-memory destination whose content survives ``close()``."""

    def __init__(self) -> None:
        super().__init__()
        self._captured: Optional[bytes] = None

    def close(self) -> None:
        if not self.closed:
            self._captured = self.getvalue()
        super().close()

    def captured_value(self) -> bytes:
        if self._captured is not None:
            return self._captured
        return self.getvalue()


class Reporting:
    """Report executor.

    Collaborators are set once at configuration time and only read while
    reports run, and each run works on its own band tree, so one instance
    can serve concurrent requests provided the collaborators are thread-safe.

    Attributes:
        formatter_factory: Formatter registry for standard templates.
        loader_factory: Data loader registry.
        data_extractor: Extractor populating the band tree.
        value_converter: Converter for parameter defaults.
        post_processor_registry: Registry of post-processors.
        logger: Logger receiving run records.
    """

    def __init__(
        self,
        formatter_factory: Optional[ReportFormatterFactory] = None,
        loader_factory: Optional[ReportLoaderFactory] = None,
        data_extractor: Optional[DataExtractor] = None,
        value_converter: Optional[ValueConverter] = None,
        post_processor_registry: Optional[PostProcessorRegistry] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize Reporting.

        Args:
            formatter_factory: Formatter registry (built-in formatters if None).
            loader_factory: Loader registry (built-in loaders if None).
            data_extractor: Extractor; derived from ``loader_factory`` if None.
            value_converter: Converter (uses :class:`DefaultValueConverter` if None).
            post_processor_registry: Post-processor registry (empty if None).
            logger: Logger for run records (module logger if None).
        """
        self.logger = logger or logging.getLogger(__name__)
        self.formatter_factory = formatter_factory or ReportFormatterFactory()
        self.post_processor_registry = post_processor_registry or PostProcessorRegistry()
        self.value_converter: ValueConverter = value_converter or DefaultValueConverter()
        self.parameter_resolver = ParameterResolver(self.value_converter)
        self.loader_factory: Optional[ReportLoaderFactory] = None
        self.data_extractor: Optional[DataExtractor] = data_extractor
        self._data_extractor_derived = False
        self.set_loader_factory(loader_factory or ReportLoaderFactory())

    @classmethod
    def from_config(
        cls, config: ReportingConfig, logger: Optional[logging.Logger] = None
    ) -> "Reporting":
        """Create an executor from configuration.

        Referenced post-processors and formatters are imported here, once.

        Args:
            config: Engine configuration.
            logger: Logger for run records.

        Returns:
            Configured executor.

        Raises:
            PostProcessorNotFoundError: If a post-processor reference cannot be imported.
            ImportError: If a formatter reference cannot be imported.
        """
        formatter_factory = ReportFormatterFactory()
        for extension, reference in config.formatters.items():
            formatter_factory.register(extension, config.load_reference(reference))

        post_processors = PostProcessorRegistry()
        for identifier, constructor in config.load_post_processors().items():
            post_processors.register(identifier, constructor)

        loader_factory = ReportLoaderFactory()
        data_extractor = DefaultDataExtractor(
            loader_factory,
            put_empty_row_if_no_data_selected=config.put_empty_row_if_no_data_selected,
        )
        return cls(
            formatter_factory=formatter_factory,
            loader_factory=loader_factory,
            data_extractor=data_extractor,
            post_processor_registry=post_processors,
            logger=logger,
        )

    def set_formatter_factory(self, formatter_factory: ReportFormatterFactory) -> None:
        """Set the formatter registry."""
        self.formatter_factory = formatter_factory

    def set_loader_factory(self, loader_factory: ReportLoaderFactory) -> None:
        """Set the loader registry, deriving a default extractor if none was set."""
        self.loader_factory = loader_factory
        if self.data_extractor is None or self._data_extractor_derived:
            self.data_extractor = DefaultDataExtractor(loader_factory)
            self._data_extractor_derived = True

    def set_data_extractor(self, data_extractor: DataExtractor) -> None:
        """Set the data extractor explicitly."""
        self.data_extractor = data_extractor
        self._data_extractor_derived = False

    def set_value_converter(self, value_converter: ValueConverter) -> None:
        """Set the converter for parameter defaults."""
        self.value_converter = value_converter
        self.parameter_resolver = ParameterResolver(value_converter)

    def set_post_processor_registry(self, registry: PostProcessorRegistry) -> None:
        """Set the post-processor registry."""
        self.post_processor_registry = registry

    def run_report(
        self, run_params: RunParams, output_stream: Optional[BinaryIO] = None
    ) -> ReportOutputDocument:
        """Run a report.

        Args:
            run_params: Request to run.
            output_stream: Destination for the document. When omitted the
                document is buffered and returned as ``content``.

        Returns:
            Output descriptor. ``content`` is set only for buffered runs.

        Raises:
            InvalidInputError: If a required argument is missing.
            ReportingInterruptedError: If a collaborator cancelled the run.
            ReportingError: On any other failure, annotated with the report name.
        """
        if run_params is None:
            raise InvalidInputError('"run_params" can not be None')

        if output_stream is not None:
            return self._run_report(
                run_params.report,
                run_params.report_template,
                run_params.requested_output_type,
                run_params.parameters,
                output_stream,
            )

        buffer = _CapturingBuffer()
        document = self._run_report(
            run_params.report,
            run_params.report_template,
            run_params.requested_output_type,
            run_params.parameters,
            buffer,
        )
        document.content = buffer.captured_value()
        return document

    def _run_report(
        self,
        report: Optional[Report],
        template: Optional[ReportTemplate],
        output_type: Optional[ReportOutputType],
        params: Optional[Mapping[str, Any]],
        output_stream: Optional[BinaryIO],
    ) -> ReportOutputDocument:
        report = _require(report, '"report" parameter can not be None')
        template = _require(template, '"reportTemplate" can not be None')
        params = _require(params, '"params" can not be None')
        output_stream = _require(output_stream, '"outputStream" can not be None')

        stage = ExecutionStage.RESOLVING_PARAMETERS
        try:
            handled_params = self.parameter_resolver.resolve(report, params)
            self._log_report("Started report [{}] with parameters [{}]", report, handled_params)

            final_output_type = output_type if output_type is not None else template.output_type

            stage = ExecutionStage.EXTRACTING_DATA
            root_band = self._load_band_data(report, handled_params)

            stage = ExecutionStage.RENDERING

            def enter_post_processing() -> None:
                nonlocal stage
                stage = ExecutionStage.POST_PROCESSING

            dispatcher = RenderDispatcher(self.formatter_factory, self.post_processor_registry)
            dispatcher.render(
                report,
                template,
                final_output_type,
                output_stream,
                handled_params,
                root_band,
                on_post_processing=enter_post_processing,
            )

            self._log_report("Finished report [{}] with parameters [{}]", report, handled_params)

            stage = ExecutionStage.NAMING_OUTPUT
            output_name = resolve_output_file_name(
                template.document_name,
                template.output_name_pattern,
                final_output_type,
                root_band,
            )
            return ReportOutputDocument(report, None, output_name, final_output_type)
        except ReportingInterruptedError as e:
            e.stage = e.stage or stage.value
            self._log_report(
                "Report is canceled by user request. Report [{}] with parameters [{}].",
                report,
                params,
            )
            raise
        except ReportingError as e:
            e.stage = e.stage or stage.value
            self._log_report(
                "An error occurred while running report [{}] with parameters [{}].",
                report,
                params,
                level=logging.ERROR,
                error=e,
            )
            e.set_report_details(f" Report name [{report.name}]")
            raise

    def _load_band_data(self, report: Report, handled_params: Mapping[str, Any]) -> BandData:
        if self.data_extractor is None:
            raise ReportingError("No data extractor configured")

        root_band = BandData(BandData.ROOT_BAND_NAME)
        root_band.data = dict(handled_params)
        root_band.add_report_field_formats(report.field_format_map)
        root_band.first_level_band_definition_names = []

        self.data_extractor.extract_data(report, handled_params, root_band)
        root_band.seal()
        return root_band

    def _log_report(
        self,
        caption: str,
        report: Report,
        params: Mapping[str, Any],
        level: int = logging.INFO,
        error: Optional[BaseException] = None,
    ) -> None:
        parameters = "".join(
            f"\n{key}:{self.value_converter.convert_to_string(value)}"
            for key, value in params.items()
        )
        self.logger.log(level, caption.format(report.name, parameters), exc_info=error)


def _require(value: Optional[_T], message: str) -> _T:
    if value is None:
        raise InvalidInputError(message)
    return value
