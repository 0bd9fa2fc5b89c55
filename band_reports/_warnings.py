"""Custom warning classes for the band_reports package.

These warning classes allow callers to filter, suppress, or capture
warnings with Python's standard ``warnings`` module.

Example:
    Silence configuration warnings in a batch job::

        import warnings
        from band_reports._warnings import ConfigurationWarning

        warnings.filterwarnings("ignore", category=ConfigurationWarning)
"""


class ReportingWarning(UserWarning):
    """Base class for all band_reports warnings."""


class ConfigurationWarning(ReportingWarning):
    """Unusual or potentially incorrect engine configuration.

    Emitted when a registration replaces an existing one.
    """


class TemplateWarning(ReportingWarning):
    """Template content that renders but probably not as intended."""
