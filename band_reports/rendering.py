"""Document rendering: formatter selection and render dispatch.

The :class:`RenderDispatcher` decides how a template becomes bytes on the
destination stream:

1. Custom templates render themselves through their ``custom_report``.
2. Templates with a post-processor are rendered into memory first, passed
   through the post-processor, then written to the destination, which is
   closed afterwards.
3. All other templates are rendered straight to the destination by a
   formatter that the :class:`ReportFormatterFactory` selects from the
   template's file extension.

The factory ships formatters for text and HTML templates (Jinja2), CSV
(pandas) and XLSX (openpyxl). Further formats are added with
:meth:`ReportFormatterFactory.register`.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
import io
import logging
from typing import Any, BinaryIO, Callable, Dict, FrozenSet, List, Mapping, Optional, Protocol
import warnings

import jinja2
import openpyxl
import pandas as pd

from ._warnings import ConfigurationWarning, TemplateWarning
from .band_data import BandData
from .exceptions import (
    RenderingError,
    ReportingError,
    UnsupportedFormatError,
)
from .post_processing import PostProcessorRegistry
from .structure import Report, ReportOutputType, ReportTemplate

logger = logging.getLogger(__name__)


@dataclass
class FormatterFactoryInput:
    """Everything a formatter needs to render one document.

    Attributes:
        template_extension: Template file extension used to select the formatter.
        root_band: Populated band tree.
        template: Template being rendered.
        output_type: Effective output type.
        output_stream: Binary stream receiving the document.
    """

    template_extension: str
    root_band: BandData
    template: ReportTemplate
    output_type: ReportOutputType
    output_stream: BinaryIO


class ReportFormatter(Protocol):
    """Contract for formatters."""

    def render_document(self) -> None: ...


class CustomReport(Protocol):
    """Contract for templates that render themselves."""

    def create_report(self, report: Report, root_band: BandData, params: Mapping[str, Any]) -> bytes: ...


class AbstractFormatter(ABC):
    """Base class for the built-in formatters.

    Attributes:
        root_band: Populated band tree.
        template: Template being rendered.
        output_type: Effective output type.
        output_stream: Destination stream.
    """

    SUPPORTED_OUTPUT_TYPES: FrozenSet[ReportOutputType] = frozenset()

    def __init__(self, factory_input: FormatterFactoryInput):
        """Initialize the formatter.

        Args:
            factory_input: Rendering inputs.

        Raises:
            UnsupportedFormatError: If the formatter cannot produce the output type.
        """
        self.root_band = factory_input.root_band
        self.template = factory_input.template
        self.output_type = factory_input.output_type
        self.output_stream = factory_input.output_stream

        supported = self.SUPPORTED_OUTPUT_TYPES | {ReportOutputType.CUSTOM}
        if self.output_type not in supported:
            raise UnsupportedFormatError(
                f"{type(self).__name__} does not support output type [{self.output_type.id}] "
                f"for template [{self.template.document_name}]"
            )

    @abstractmethod
    def render_document(self) -> None:
        """Render the document to :attr:`output_stream`."""

    def format_value(self, band: BandData, field_name: str, value: Any) -> Any:
        """Apply the report's field format to a value.

        Formats containing ``{`` are applied with :meth:`str.format`; other
        formats are ``strftime`` patterns for dates. Values without a
        declared format are returned unchanged.
        """
        field_format = band.get_field_format(field_name)
        if field_format is None or value is None:
            return value
        if "{" in field_format:
            return field_format.format(value)
        if isinstance(value, (date, datetime)):
            return value.strftime(field_format)
        return value

    def first_level_bands(self) -> Dict[str, List[BandData]]:
        """First-level bands grouped by definition name, in definition order."""
        names = list(self.root_band.first_level_band_definition_names)
        for name in self.root_band.child_bands:
            if name not in names:
                names.append(name)
        return {name: self.root_band.get_children_by_name(name) for name in names}


class JinjaFormatter(AbstractFormatter):
    """Render text and HTML templates with Jinja2.

    The template sees ``Root`` (the root band), ``params`` (the report
    parameters), ``bands`` (first-level bands grouped by name) and a
    ``fmt(band, field)`` helper that applies the report's field formats.
    Undefined variables are errors.
    """

    SUPPORTED_OUTPUT_TYPES = frozenset({ReportOutputType.TXT, ReportOutputType.HTML})

    def render_document(self) -> None:
        source = self.template.get_content().decode("utf-8")
        if not source.strip():
            warnings.warn(
                f"Template [{self.template.document_name}] is empty", TemplateWarning, stacklevel=2
            )

        environment = jinja2.Environment(
            undefined=jinja2.StrictUndefined,
            autoescape=self.output_type is ReportOutputType.HTML,
            keep_trailing_newline=True,
        )
        try:
            template = environment.from_string(source)
            text = template.render(
                Root=self.root_band,
                params=dict(self.root_band.data),
                bands=self.first_level_bands(),
                fmt=lambda band, field: self.format_value(band, field, band.data.get(field)),
            )
        except jinja2.TemplateError as e:
            raise RenderingError(
                f"An error occurred while rendering template [{self.template.document_name}]: {e}",
                e,
            ) from e

        self.output_stream.write(text.encode("utf-8"))


class CsvFormatter(AbstractFormatter):
    """Write one band as CSV.

    The band is the first first-level band, or the band named by the
    template content when the content is a band name. Column order follows
    first appearance of each field.
    """

    SUPPORTED_OUTPUT_TYPES = frozenset({ReportOutputType.CSV})

    def render_document(self) -> None:
        bands = self.first_level_bands()
        band_name = self.template.get_content().decode("utf-8").strip() or next(iter(bands), "")
        rows = bands.get(band_name) or self.root_band.get_children_by_name(band_name)
        if not rows:
            warnings.warn(
                f"No band [{band_name}] to write for template [{self.template.document_name}]",
                TemplateWarning,
                stacklevel=2,
            )

        frame = pd.DataFrame(
            [
                {field: self.format_value(band, field, value) for field, value in band.data.items()}
                for band in rows
            ]
        )
        self.output_stream.write(frame.to_csv(index=False).encode("utf-8"))


class XlsxFormatter(AbstractFormatter):
    """Write first-level bands to an XLSX workbook, one sheet per band name.

    When the template content is a workbook, it is used as the base: a sheet
    named after a band keeps its first row as header, and band rows are
    appended below the existing content in header column order.
    """

    SUPPORTED_OUTPUT_TYPES = frozenset({ReportOutputType.XLSX})

    def render_document(self) -> None:
        content = self.template.get_content()
        workbook = openpyxl.load_workbook(io.BytesIO(content)) if content else openpyxl.Workbook()
        placeholder_sheet = None if content else workbook.active

        for band_name, bands in self.first_level_bands().items():
            if band_name in workbook.sheetnames:
                sheet = workbook[band_name]
                header = [cell.value for cell in sheet[1] if cell.value is not None]
                if not header:
                    header = _field_names(bands)
                    for column, field in enumerate(header, start=1):
                        sheet.cell(row=1, column=column, value=field)
            else:
                sheet = workbook.create_sheet(title=band_name[:31])
                header = _field_names(bands)
                sheet.append(header)
            for band in bands:
                sheet.append(
                    [_cell_value(self.format_value(band, field, band.data.get(field))) for field in header]
                )

        if placeholder_sheet is not None and len(workbook.sheetnames) > 1:
            workbook.remove(placeholder_sheet)
        workbook.save(self.output_stream)


def _field_names(bands: List[BandData]) -> List[str]:
    names: List[str] = []
    for band in bands:
        for field in band.data:
            if field not in names:
                names.append(field)
    return names


def _cell_value(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, date, datetime)):
        return value
    return str(value)


FormatterConstructor = Callable[[FormatterFactoryInput], ReportFormatter]


class ReportFormatterFactory:
    """Registry of formatters keyed by template extension.

    Registration happens at configuration time; afterwards the factory is
    only read, so one instance can serve concurrent runs.
    """

    def __init__(self, register_defaults: bool = True):
        """Initialize ReportFormatterFactory.

        Args:
            register_defaults: Whether to register the built-in formatters.
        """
        self._formatters: Dict[str, FormatterConstructor] = {}
        if register_defaults:
            for extension in ("txt", "html", "htm", "md"):
                self._formatters[extension] = JinjaFormatter
            self._formatters["csv"] = CsvFormatter
            self._formatters["xlsx"] = XlsxFormatter

    @property
    def extensions(self) -> List[str]:
        """Registered template extensions."""
        return list(self._formatters)

    def register(self, extension: str, constructor: FormatterConstructor) -> None:
        """Register a formatter for a template extension.

        Args:
            extension: Template extension without the dot; case-insensitive.
            constructor: Callable taking a :class:`FormatterFactoryInput`.
        """
        key = extension.lower().lstrip(".")
        if key in self._formatters:
            warnings.warn(
                f"Formatter for extension '{extension}' replaced", ConfigurationWarning, stacklevel=2
            )
        self._formatters[key] = constructor

    def create_formatter(self, factory_input: FormatterFactoryInput) -> ReportFormatter:
        """Create the formatter for a template extension.

        Raises:
            UnsupportedFormatError: If no formatter is registered for the extension.
        """
        constructor = self._formatters.get(factory_input.template_extension.lower())
        if constructor is None:
            raise UnsupportedFormatError(
                f"Unsupported template extension [{factory_input.template_extension}] "
                f"of template [{factory_input.template.document_name}]. "
                f"Registered extensions: {self.extensions}"
            )
        return constructor(factory_input)


class RenderDispatcher:
    """Route a template to the right rendering path.

    Attributes:
        formatter_factory: Factory for standard templates.
        post_processors: Registry consulted for templates with a post-processor.
    """

    def __init__(
        self,
        formatter_factory: ReportFormatterFactory,
        post_processors: Optional[PostProcessorRegistry] = None,
    ):
        self.formatter_factory = formatter_factory
        self.post_processors = post_processors or PostProcessorRegistry()

    def render(
        self,
        report: Report,
        template: ReportTemplate,
        output_type: ReportOutputType,
        output_stream: BinaryIO,
        params: Mapping[str, Any],
        root_band: BandData,
        on_post_processing: Optional[Callable[[], None]] = None,
    ) -> None:
        """Render a template and write the document to ``output_stream``.

        Args:
            report: Report being run.
            template: Template to render.
            output_type: Effective output type.
            output_stream: Destination stream.
            params: Resolved parameters.
            root_band: Populated band tree.
            on_post_processing: Called once the document has been rendered
                into memory, just before its post-processor runs.

        Raises:
            RenderingError: If rendering or writing fails.
            ReportingInterruptedError: If a collaborator reports cancellation.
        """
        if template.is_custom:
            self._render_custom(report, template, output_stream, params, root_band)
        elif self.is_post_processor_set(template):
            self._render_with_post_processor(
                template, output_type, output_stream, root_band, on_post_processing
            )
        else:
            self.render_document(template.extension, root_band, template, output_type, output_stream)

    def render_document(
        self,
        template_extension: str,
        root_band: BandData,
        template: ReportTemplate,
        output_type: ReportOutputType,
        output_stream: BinaryIO,
    ) -> None:
        """Render a standard template with the formatter for its extension."""
        factory_input = FormatterFactoryInput(
            template_extension, root_band, template, output_type, output_stream
        )
        formatter = self.formatter_factory.create_formatter(factory_input)
        try:
            formatter.render_document()
        except ReportingError:
            raise
        except Exception as e:
            raise RenderingError(
                f"An error occurred while rendering template [{template.document_name}].", e
            ) from e

    @staticmethod
    def is_post_processor_set(template: ReportTemplate) -> bool:
        """Whether the template names a post-processor."""
        return bool(template.post_processor)

    def _render_custom(
        self,
        report: Report,
        template: ReportTemplate,
        output_stream: BinaryIO,
        params: Mapping[str, Any],
        root_band: BandData,
    ) -> None:
        try:
            document = template.custom_report.create_report(report, root_band, params)
            output_stream.write(document)
        except OSError as e:
            raise RenderingError(
                f"An error occurred while processing custom template [{template.document_name}].",
                e,
            ) from e

    def _render_with_post_processor(
        self,
        template: ReportTemplate,
        output_type: ReportOutputType,
        output_stream: BinaryIO,
        root_band: BandData,
        on_post_processing: Optional[Callable[[], None]] = None,
    ) -> None:
        buffer = io.BytesIO()
        self.render_document(template.extension, root_band, template, output_type, buffer)
        if on_post_processing is not None:
            on_post_processing()

        try:
            document = self._post_process(template, buffer.getvalue(), root_band)
            try:
                output_stream.write(document)
            except OSError as e:
                raise RenderingError("Cannot save report to output stream", e) from e
        finally:
            output_stream.close()

    def _post_process(self, template: ReportTemplate, document: bytes, root_band: BandData) -> bytes:
        identifier = template.post_processor or ""
        try:
            return self.post_processors.apply(document, identifier, root_band)
        except ReportingError:
            raise
        except Exception as e:
            raise RenderingError(
                f"An error occurred while post-processing template [{template.document_name}] "
                f"with [{identifier}].",
                e,
            ) from e
