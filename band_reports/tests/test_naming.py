"""Tests for output file name resolution."""

import pytest

from band_reports.band_data import BandData
from band_reports.exceptions import OutputNamingBandNotFoundError, OutputNamingFieldNotFoundError
from band_reports.naming import resolve_output_file_name
from band_reports.structure import ReportOutputType


@pytest.fixture
def root_band():
    """Root band with a nested Header band."""
    root = BandData(BandData.ROOT_BAND_NAME, data={"fileName": "invoice", "empty": None})
    body = BandData("Body")
    body.add_child(BandData("Header", data={"number": 42}))
    root.add_child(body)
    root.add_child(BandData("Header", data={"number": 7}))
    return root


class TestResolveOutputFileName:
    """Test resolve_output_file_name."""

    def test_root_placeholder(self, root_band):
        """${Root.field} reads the report parameters."""
        name = resolve_output_file_name(
            "template.docx", "${Root.fileName}", ReportOutputType.PDF, root_band
        )
        assert name == "invoice.pdf"

    @pytest.mark.parametrize("band_name", ["root", "ROOT"])
    def test_root_placeholder_any_case(self, root_band, band_name):
        """The reserved root name matches regardless of case."""
        name = resolve_output_file_name(
            "template.docx", "${" + band_name + ".fileName}", ReportOutputType.PDF, root_band
        )
        assert name == "invoice.pdf"

    def test_no_pattern_uses_document_name(self, root_band):
        """Without a pattern the template name is used with the output extension."""
        name = resolve_output_file_name("template.xlsx", None, ReportOutputType.PDF, root_band)
        assert name == "template.pdf"

    def test_blank_pattern_uses_document_name(self, root_band):
        """A whitespace pattern counts as absent."""
        name = resolve_output_file_name("template.xlsx", "   ", ReportOutputType.CSV, root_band)
        assert name == "template.csv"

    def test_nested_band_first_in_depth_first_order(self, root_band):
        """The band is found depth-first, so the nested Header wins."""
        name = resolve_output_file_name(
            "t.txt", "doc-${Header.number}.txt", ReportOutputType.HTML, root_band
        )
        assert name == "doc-42.html"

    def test_missing_band(self, root_band):
        """An unknown band raises a band-not-found error."""
        with pytest.raises(OutputNamingBandNotFoundError) as exc_info:
            resolve_output_file_name("t.txt", "${Footer.number}", ReportOutputType.TXT, root_band)

        assert exc_info.value.band_name == "Footer"
        assert "No data in band [Footer] found" in str(exc_info.value)

    def test_missing_field(self, root_band):
        """An unknown field raises a field-not-found error."""
        with pytest.raises(OutputNamingFieldNotFoundError) as exc_info:
            resolve_output_file_name("t.txt", "${Header.total}", ReportOutputType.TXT, root_band)

        assert exc_info.value.band_name == "Header"
        assert exc_info.value.field_name == "total"

    def test_none_field_value(self, root_band):
        """A field holding None is treated as missing."""
        with pytest.raises(OutputNamingFieldNotFoundError):
            resolve_output_file_name("t.txt", "${Root.empty}", ReportOutputType.TXT, root_band)

    def test_custom_type_keeps_extension(self, root_band):
        """Custom output keeps the resolved name unchanged."""
        name = resolve_output_file_name(
            "t.txt", "${Root.fileName}.zip", ReportOutputType.CUSTOM, root_band
        )
        assert name == "invoice.zip"

    def test_pattern_without_placeholder_used_verbatim(self, root_band):
        """Patterns without a placeholder are used as-is before extension rewriting."""
        name = resolve_output_file_name(
            "t.txt", "monthly report.txt", ReportOutputType.PDF, root_band
        )
        assert name == "monthly report.pdf"

    def test_malformed_placeholder_used_verbatim(self, root_band):
        """A malformed placeholder is not an error."""
        name = resolve_output_file_name("t.txt", "${Root}", ReportOutputType.CUSTOM, root_band)
        assert name == "${Root}"

    def test_name_without_extension_gets_one(self, root_band):
        """Names without a dot get the output extension appended."""
        name = resolve_output_file_name("t.txt", "${Root.fileName}", ReportOutputType.XLSX, root_band)
        assert name == "invoice.xlsx"

    def test_only_first_placeholder_substituted(self, root_band):
        """Only the first placeholder is replaced."""
        name = resolve_output_file_name(
            "t.txt", "${Root.fileName}-${Header.number}", ReportOutputType.CUSTOM, root_band
        )
        assert name == "invoice-${Header.number}"

    def test_band_tree_not_modified(self, root_band):
        """Naming reads the tree without changing it."""
        before = root_band.to_dict()
        resolve_output_file_name("t.txt", "${Header.number}", ReportOutputType.TXT, root_band)
        assert root_band.to_dict() == before
