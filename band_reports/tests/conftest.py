"""Pytest configuration and shared fixtures."""

from typing import Any, Dict, List, Mapping

import pytest

from band_reports.band_data import BandData
from band_reports.extraction import ReportLoaderFactory
from band_reports.post_processing import PostProcessorRegistry, ReportPostProcessor
from band_reports.structure import (
    BandDefinition,
    DefaultValueParameter,
    PlainParameter,
    Report,
    ReportOutputType,
    ReportQuery,
    ReportTemplate,
)


class RecordingLoader:
    """Data loader returning canned rows and recording every call."""

    def __init__(self, rows: List[Dict[str, Any]]):
        self.rows = rows
        self.calls: List[Dict[str, Any]] = []

    def load_data(self, query, parent_band, params: Mapping[str, Any]):
        self.calls.append({"query": query.name, "parent": parent_band.name, "params": dict(params)})
        return [dict(row) for row in self.rows]


class UpperCasePostProcessor(ReportPostProcessor):
    """Post-processor upper-casing the rendered document."""

    def post_process_report(self, document: bytes, root_band: BandData) -> bytes:
        return document.upper()


class FailingPostProcessor(ReportPostProcessor):
    """Post-processor failing on every document."""

    def post_process_report(self, document: bytes, root_band: BandData) -> bytes:
        raise OSError("disk full")


class RecordingStream:
    """Binary sink that records writes and closes."""

    def __init__(self) -> None:
        self.writes: List[bytes] = []
        self.closed = False

    def write(self, data: bytes) -> int:
        if self.closed:
            raise ValueError("write to closed stream")
        self.writes.append(bytes(data))
        return len(data)

    def close(self) -> None:
        self.closed = True

    @property
    def value(self) -> bytes:
        return b"".join(self.writes)


def make_template(**overrides: Any) -> ReportTemplate:
    """Return a text template; keyword arguments override fields."""
    fields: Dict[str, Any] = {
        "document_name": "invoice.txt",
        "content": b"Invoice for {{ Root.data.customer }}",
        "output_type": ReportOutputType.TXT,
    }
    fields.update(overrides)
    return ReportTemplate(**fields)


def make_report(*templates: ReportTemplate, **overrides: Any) -> Report:
    """Return an invoice report with the given templates (a text template by default)."""
    fields: Dict[str, Any] = {
        "name": "Invoice",
        "parameters": [
            PlainParameter(name="Customer", alias="customer", required=True),
            DefaultValueParameter(
                name="Copies", alias="copies", parameter_class=int, default_value="1"
            ),
        ],
        "templates": list(templates or [make_template()]),
    }
    fields.update(overrides)
    return Report(**fields)


@pytest.fixture
def sample_report():
    """Report with one text template and two declared parameters."""
    return make_report()


@pytest.fixture
def lines_report():
    """Report with an ``Items`` band loaded from the ``items`` parameter."""
    root = BandDefinition(
        name="Root",
        children=[
            BandDefinition(
                name="Items",
                queries=[ReportQuery(name="items", loader_type="parameter", script="items")],
            )
        ],
    )
    template = make_template(
        content=b"{% for item in bands['Items'] %}{{ item.data.sku }};{% endfor %}",
        output_name_pattern="${Items.sku}.txt",
    )
    parameters = [
        PlainParameter(name="Customer", alias="customer", required=True),
        PlainParameter(name="Items", alias="items", parameter_class=list),
    ]
    return make_report(template, root_band=root, parameters=parameters)


@pytest.fixture
def loader_factory():
    """Loader factory with only the built-in loaders."""
    return ReportLoaderFactory()


@pytest.fixture
def post_processors():
    """Registry with an upper-casing and a failing post-processor."""
    registry = PostProcessorRegistry()
    registry.register("upper", UpperCasePostProcessor)
    registry.register("failing", FailingPostProcessor)
    return registry


@pytest.fixture
def recording_stream():
    """Stream recording writes and close calls."""
    return RecordingStream()


@pytest.fixture
def template_factory():
    """Factory for text templates with field overrides."""
    return make_template


@pytest.fixture
def report_factory():
    """Factory for invoice reports with the given templates."""
    return make_report


@pytest.fixture
def recording_loader_factory():
    """Factory for loaders returning canned rows."""
    return RecordingLoader
