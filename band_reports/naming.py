"""Output file name resolution.

A template's output name pattern may contain one ``${band.field}``
placeholder, which is replaced with the value of ``field`` in the first
band named ``band``. ``Root`` (in any case) addresses the root band, i.e.
the report parameters. Unless the output type is ``custom``, the resulting name's
extension is replaced with the output type's extension.
"""

import re
from typing import Optional

from .band_data import BandData
from .exceptions import OutputNamingBandNotFoundError, OutputNamingFieldNotFoundError
from .structure import ReportOutputType

OUTPUT_NAME_PLACEHOLDER = re.compile(r"\$\{([A-Za-z0-9_]+)\.([A-Za-z0-9_]+)\}")


def resolve_output_file_name(
    document_name: str,
    output_name_pattern: Optional[str],
    output_type: ReportOutputType,
    root_band: BandData,
) -> str:
    """Compute the output file name for a report run.

    Args:
        document_name: Template document name, used when no pattern is set.
        output_name_pattern: Naming pattern, possibly with a placeholder.
        output_type: Effective output type of the run.
        root_band: Populated band tree. It is not modified.

    Returns:
        Resolved file name.

    Raises:
        OutputNamingBandNotFoundError: If the placeholder's band does not exist.
        OutputNamingFieldNotFoundError: If the placeholder's field is missing or ``None``.

    Examples:
        >>> root = BandData(BandData.ROOT_BAND_NAME, data={"fileName": "invoice"})
        >>> resolve_output_file_name("t.docx", "${Root.fileName}", ReportOutputType.PDF, root)
        'invoice.pdf'
    """
    output_name = document_name
    if output_name_pattern and output_name_pattern.strip():
        output_name = _substitute_placeholder(output_name_pattern, root_band)

    if output_type is not ReportOutputType.CUSTOM:
        output_name = f"{output_name.rsplit('.', 1)[0]}.{output_type.extension}"

    return output_name


def _substitute_placeholder(pattern: str, root_band: BandData) -> str:
    match = OUTPUT_NAME_PLACEHOLDER.search(pattern)
    if match is None:
        # Malformed or placeholder-free patterns are used as-is.
        return pattern

    band_name, field_name = match.group(1), match.group(2)
    if band_name.lower() == BandData.ROOT_BAND_NAME.lower():
        band: Optional[BandData] = root_band
    else:
        band = root_band.find_band_recursively(band_name)

    if band is None:
        raise OutputNamingBandNotFoundError(band_name)

    value = band.data.get(field_name)
    if value is None:
        raise OutputNamingFieldNotFoundError(band_name, field_name)

    return pattern[: match.start()] + str(value) + pattern[match.end() :]
