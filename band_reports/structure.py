"""Report definition models.

This module declares the read-only structures a caller hands to the
executor: the :class:`Report` definition with its declared parameters, band
hierarchy and templates, and the :class:`ReportOutputDocument` returned for
each run. Definitions are Pydantic models so they can be validated when
loaded from YAML.

Examples:
    Declaring a report in code::

        report = Report(
            name="Invoice",
            parameters=[
                PlainParameter(name="Customer", alias="customer", required=True),
                DefaultValueParameter(
                    name="Copies", alias="copies", parameter_class=int, default_value="1"
                ),
            ],
            templates={
                "DEFAULT": ReportTemplate(
                    document_name="invoice.txt",
                    content=b"Invoice for {{ Root.data.customer }}",
                    output_type=ReportOutputType.TXT,
                    output_name_pattern="${Root.customer}.txt",
                )
            },
        )

    Loading a report from YAML::

        report = Report.from_yaml(Path("reports/invoice.yaml"))
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator
import yaml

DEFAULT_TEMPLATE_CODE = "DEFAULT"

_PARAMETER_TYPES: Dict[str, type] = {
    "str": str,
    "string": str,
    "int": int,
    "integer": int,
    "float": float,
    "bool": bool,
    "boolean": bool,
    "decimal": Decimal,
    "date": date,
    "datetime": datetime,
    "list": list,
    "dict": dict,
}


class ReportOutputType(Enum):
    """Target document formats.

    The value of each member is its identifier, which is also the canonical
    file extension. :attr:`CUSTOM` is the sentinel for externally rendered
    documents and suppresses extension rewriting of output names.
    """

    XLS = "xls"
    XLSX = "xlsx"
    DOC = "doc"
    DOCX = "docx"
    PDF = "pdf"
    HTML = "html"
    CSV = "csv"
    TXT = "txt"
    CUSTOM = "custom"

    @property
    def id(self) -> str:
        """Identifier of the output type."""
        return self.value

    @property
    def extension(self) -> str:
        """Canonical file extension, without the leading dot."""
        return self.value

    @classmethod
    def from_id(cls, output_type_id: str) -> "ReportOutputType":
        """Parse an output type identifier.

        Args:
            output_type_id: Identifier such as ``"pdf"``; case-insensitive.

        Returns:
            The matching output type.

        Raises:
            ValueError: If the identifier is unknown.
        """
        return cls(output_type_id)

    @classmethod
    def _missing_(cls, value: object) -> Optional["ReportOutputType"]:
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class _BaseParameter(BaseModel):
    """Fields shared by all declared report parameters."""

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    name: str = Field(description="Display name of the parameter")
    alias: str = Field(description="Key used in the caller's parameter map")
    parameter_class: Any = Field(default=str, description="Expected Python type of the value")
    required: bool = Field(default=False, description="Whether a value must be present")

    @model_validator(mode="before")
    @classmethod
    def default_alias_to_name(cls, data: Any) -> Any:
        """Use the parameter name as alias when no alias is declared."""
        if isinstance(data, dict) and not data.get("alias") and data.get("name"):
            data = {**data, "alias": data["name"]}
        return data

    @field_validator("parameter_class", mode="before")
    @classmethod
    def validate_parameter_class(cls, v: Any) -> type:
        """Accept a type object or one of the well-known type names.

        Args:
            v: Type or type name such as ``"int"`` or ``"date"``.

        Returns:
            The resolved type.

        Raises:
            ValueError: If the name is unknown or the value is not a type.
        """
        if isinstance(v, str):
            resolved = _PARAMETER_TYPES.get(v.strip().lower())
            if resolved is None:
                raise ValueError(
                    f"Unknown parameter class: {v}. Must be one of {sorted(_PARAMETER_TYPES)}"
                )
            return resolved
        if not isinstance(v, type):
            raise ValueError(f"parameter_class must be a type, got {v!r}")
        return v


class PlainParameter(_BaseParameter):
    """A declared parameter without a default value."""

    kind: Literal["plain"] = "plain"


class DefaultValueParameter(_BaseParameter):
    """A declared parameter carrying a default, stored as a string.

    The default is converted to :attr:`parameter_class` at run time by the
    configured value converter.
    """

    kind: Literal["with_default"] = "with_default"
    default_value: Optional[str] = Field(default=None, description="Default value as text")

    @field_validator("default_value", mode="before")
    @classmethod
    def stringify_default(cls, v: Any) -> Optional[str]:
        """YAML may type defaults (``1``, ``true``); keep them as text."""
        if v is None or isinstance(v, str):
            return v
        if isinstance(v, bool):
            return str(v).lower()
        if isinstance(v, (date, datetime)):
            return v.isoformat()
        return str(v)


ReportParameter = Annotated[
    Union[PlainParameter, DefaultValueParameter], Field(discriminator="kind")
]


class ReportFieldFormat(BaseModel):
    """Display format for a band field.

    Attributes:
        name: Field path as ``band.field``.
        format: Format string, e.g. ``"{:,.2f}"`` or ``"%d.%m.%Y"``.
    """

    model_config = {"frozen": True}

    name: str
    format: str


class ReportQuery(BaseModel):
    """A data set query attached to a band definition.

    Attributes:
        name: Query name, used in error messages.
        loader_type: Key of the data loader that executes the query.
        script: Loader-specific query text.
        link_parameter_name: Parent band field exposed to the query as a parameter.
        additional_parameters: Extra static parameters passed to the loader.
    """

    model_config = {"frozen": True}

    name: str
    loader_type: str
    script: str = ""
    link_parameter_name: Optional[str] = None
    additional_parameters: Dict[str, Any] = Field(default_factory=dict)


class BandDefinition(BaseModel):
    """Definition of one band of the report's band hierarchy."""

    model_config = {"frozen": True}

    name: str
    queries: List[ReportQuery] = Field(default_factory=list)
    children: List["BandDefinition"] = Field(default_factory=list)


class ReportTemplate(BaseModel):
    """A document template plus its rendering, naming and post-processing setup.

    A template is rendered either by the configured formatter factory
    (standard rendering) or, when :attr:`custom` is set, by its own
    :attr:`custom_report` object. Exactly one of the two applies.

    Attributes:
        code: Template code, unique within a report.
        document_name: File name of the template; its suffix selects the formatter.
        document_path: Optional file holding the template body.
        content: Template body.
        output_type: Default output type when the caller does not request one.
        output_name_pattern: Output file name, optionally with one
            ``${band.field}`` placeholder.
        post_processor: Identifier of a registered post-processor.
        custom: Whether the template is rendered by :attr:`custom_report`.
        custom_report: Object with ``create_report(report, root_band, params) -> bytes``.
    """

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    code: str = DEFAULT_TEMPLATE_CODE
    document_name: str
    document_path: Optional[Path] = None
    content: bytes = b""
    output_type: ReportOutputType
    output_name_pattern: Optional[str] = None
    post_processor: Optional[str] = None
    custom: bool = False
    custom_report: Optional[Any] = Field(default=None, exclude=True)

    @field_validator("output_type", mode="before")
    @classmethod
    def parse_output_type(cls, v: Any) -> Any:
        """Accept output type identifiers in any case."""
        if isinstance(v, str):
            return ReportOutputType.from_id(v)
        return v

    @model_validator(mode="after")
    def validate_rendering_mode(self) -> "ReportTemplate":
        """Ensure exactly one of standard or custom rendering applies."""
        if self.custom and self.custom_report is None:
            raise ValueError(f"Custom template [{self.document_name}] has no custom_report")
        if not self.custom and self.custom_report is not None:
            raise ValueError(
                f"Template [{self.document_name}] defines custom_report but is not marked custom"
            )
        if self.custom_report is not None and not callable(
            getattr(self.custom_report, "create_report", None)
        ):
            raise ValueError("custom_report must provide create_report(report, root_band, params)")
        return self

    @property
    def extension(self) -> str:
        """Suffix after the last dot of :attr:`document_name`, or ``""``."""
        if "." not in self.document_name:
            return ""
        return self.document_name.rsplit(".", 1)[1]

    @property
    def is_custom(self) -> bool:
        """Whether the template is rendered by its own custom report."""
        return self.custom

    def get_content(self) -> bytes:
        """Return the template body, reading :attr:`document_path` if needed.

        Returns:
            Template bytes; empty if neither content nor path is set.
        """
        if self.content:
            return self.content
        if self.document_path is not None:
            return self.document_path.read_bytes()
        return b""


class Report(BaseModel):
    """An immutable report definition.

    Attributes:
        name: Report name, used in log records and error annotations.
        parameters: Declared parameters, in declaration order.
        field_formats: Field display formats.
        root_band: Band hierarchy, rooted at the ``Root`` band.
        templates: Templates keyed by code.
    """

    model_config = {"frozen": True}

    name: str
    parameters: List[ReportParameter] = Field(default_factory=list)
    field_formats: List[ReportFieldFormat] = Field(default_factory=list)
    root_band: BandDefinition = Field(default_factory=lambda: BandDefinition(name="Root"))
    templates: Dict[str, ReportTemplate] = Field(default_factory=dict)

    @field_validator("parameters", mode="before")
    @classmethod
    def infer_parameter_kind(cls, v: Any) -> Any:
        """Tag untagged parameter dicts by whether they declare a default."""
        if not isinstance(v, list):
            return v
        tagged = []
        for item in v:
            if isinstance(item, dict) and "kind" not in item:
                kind = "with_default" if "default_value" in item else "plain"
                item = {**item, "kind": kind}
            tagged.append(item)
        return tagged

    @field_validator("templates", mode="before")
    @classmethod
    def key_templates_by_code(cls, v: Any) -> Any:
        """Accept a list of templates or a mapping whose keys supply missing codes."""
        if isinstance(v, list):
            return {_template_code(item): item for item in v}
        if isinstance(v, dict):
            keyed = {}
            for code, item in v.items():
                if isinstance(item, dict) and "code" not in item:
                    item = {**item, "code": code}
                keyed[code] = item
            return keyed
        return v

    @model_validator(mode="after")
    def validate_unique_aliases(self) -> "Report":
        """Parameter aliases must be unique within a report."""
        seen = set()
        duplicates = []
        for parameter in self.parameters:
            if parameter.alias in seen:
                duplicates.append(parameter.alias)
            seen.add(parameter.alias)
        if duplicates:
            raise ValueError(f"Duplicate parameter aliases in report [{self.name}]: {duplicates}")
        return self

    @property
    def field_format_map(self) -> Dict[str, str]:
        """Field formats keyed by ``band.field`` path."""
        return {field_format.name: field_format.format for field_format in self.field_formats}

    def get_template(self, code: Optional[str] = None) -> Optional[ReportTemplate]:
        """Return the template with the given code, or the default template.

        Args:
            code: Template code; ``None`` selects :data:`DEFAULT_TEMPLATE_CODE`,
                falling back to the only template when there is exactly one.

        Returns:
            The template, or ``None`` if it does not exist.
        """
        if code is None:
            template = self.templates.get(DEFAULT_TEMPLATE_CODE)
            if template is None and len(self.templates) == 1:
                template = next(iter(self.templates.values()))
            return template
        return self.templates.get(code)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[Path] = None) -> "Report":
        """Create a report from a dictionary.

        Args:
            data: Report definition.
            base_dir: Directory that relative template ``document_path`` values
                are resolved against.

        Returns:
            Validated report.
        """
        data = {k: v for k, v in data.items() if not k.startswith("_")}
        if base_dir is not None and data.get("templates"):
            templates = data["templates"]
            if isinstance(templates, dict):
                data["templates"] = {
                    code: _resolve_document_path(item, base_dir) for code, item in templates.items()
                }
            else:
                data["templates"] = [_resolve_document_path(item, base_dir) for item in templates]
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: Path) -> "Report":
        """Load a report definition from a YAML file.

        Args:
            path: Path to the YAML file.

        Returns:
            Validated report.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            pydantic.ValidationError: If the definition is invalid.
        """
        if not path.exists():
            raise FileNotFoundError(f"Report definition not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if data is None:
            data = {}

        return cls.from_dict(data, base_dir=path.parent)


def _template_code(item: Any) -> str:
    if isinstance(item, ReportTemplate):
        return item.code
    if isinstance(item, dict):
        return item.get("code", DEFAULT_TEMPLATE_CODE)
    raise ValueError(f"Invalid template definition: {item!r}")


def _resolve_document_path(item: Any, base_dir: Path) -> Any:
    if not isinstance(item, dict) or not item.get("document_path"):
        return item
    path = Path(item["document_path"])
    if path.is_absolute():
        return item
    return {**item, "document_path": base_dir / path}


@dataclass
class ReportOutputDocument:
    """Result of a report run.

    Attributes:
        report: Report that was run.
        content: Rendered bytes when the run was buffered, otherwise ``None``.
        document_name: Resolved output file name.
        output_type: Effective output type.
    """

    report: Report
    content: Optional[bytes]
    document_name: str
    output_type: ReportOutputType
