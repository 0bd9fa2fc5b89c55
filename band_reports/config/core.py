"""Engine configuration.

Contains :class:`ReportingConfig`, which collects logging setup, extraction
options and the formatters and post-processors to register. Formatters and
post-processors are named by dotted reference so that a YAML file can wire
them; references are validated on load and imported once, when the
configuration is applied to a :class:`~band_reports.reporting.Reporting`.

Examples:
    Loading from file::

        config = ReportingConfig.from_yaml(Path("reporting.yaml"))
        config.setup_logging()
        reporting = Reporting.from_config(config)

    A matching YAML file::

        logging:
          level: DEBUG
        post_processors:
          acme.stamp: acme.reports.post:StampPostProcessor
        formatters:
          rtf: acme.reports.rtf:RtfFormatter
"""

import logging
from pathlib import Path
import sys
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, Field, field_validator
import yaml

from ..exceptions import PostProcessorNotFoundError
from .reporting import LoggingConfig
from .utils import deep_merge, import_reference, split_reference

PACKAGE_LOGGER_NAME = "band_reports"


class ReportingConfig(BaseModel):
    """Complete configuration for the report engine.

    All sections have defaults, so ``ReportingConfig()`` is a valid
    configuration with console logging at INFO and only the built-in
    formatters and loaders.
    """

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    put_empty_row_if_no_data_selected: bool = Field(
        default=True, description="Create one empty band when a query returns no rows"
    )
    post_processors: Dict[str, str] = Field(
        default_factory=dict, description="Post-processor identifier to dotted reference"
    )
    formatters: Dict[str, str] = Field(
        default_factory=dict, description="Template extension to dotted formatter reference"
    )

    @field_validator("post_processors", "formatters")
    @classmethod
    def validate_references(cls, v: Dict[str, str]) -> Dict[str, str]:
        """Validate that every value is a well-formed dotted reference.

        Args:
            v: Mapping to validate.

        Returns:
            Validated mapping.

        Raises:
            ValueError: If a reference is malformed.
        """
        for reference in v.values():
            split_reference(reference)
        return v

    @classmethod
    def from_yaml(cls, path: Path) -> "ReportingConfig":
        """Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file.

        Returns:
            ReportingConfig object with validated settings.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            ValidationError: If configuration is invalid.
        """
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if data is None:
            data = {}

        # Remove private anchors if present
        data = {k: v for k, v in data.items() if not k.startswith("_")}

        return cls(**data)

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], base_config: Optional["ReportingConfig"] = None
    ) -> "ReportingConfig":
        """Create config from dictionary, optionally overriding base config.

        Args:
            data: Dictionary with configuration settings.
            base_config: Optional base configuration to override.

        Returns:
            ReportingConfig object with validated settings.
        """
        if base_config is None:
            return cls(**data)
        return cls(**deep_merge(base_config.model_dump(), data))

    def override(self, **kwargs: Any) -> "ReportingConfig":
        """Create a new config with overridden settings.

        Args:
            **kwargs: Settings to override, nested with double underscores,
                e.g. ``logging__level="DEBUG"``.

        Returns:
            New ReportingConfig object with overrides applied.
        """
        override_dict: Dict[str, Any] = {}
        for key, value in kwargs.items():
            parts = key.split("__")
            current = override_dict
            for part in parts[:-1]:
                current = current.setdefault(part, {})
            current[parts[-1]] = value

        return ReportingConfig.from_dict(override_dict, base_config=self)

    def to_yaml(self, path: Path) -> None:
        """Save configuration to YAML file.

        Args:
            path: Path where to save the configuration.
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(self.model_dump(), f, default_flow_style=False, sort_keys=False)

    def load_reference(self, reference: str) -> Any:
        """Import the object behind a dotted reference.

        Raises:
            ImportError: If the reference cannot be imported.
        """
        return import_reference(reference)

    def load_post_processors(self) -> Dict[str, Callable[[], object]]:
        """Import all configured post-processor constructors.

        Returns:
            Constructors keyed by post-processor identifier.

        Raises:
            PostProcessorNotFoundError: If a reference cannot be imported.
        """
        constructors: Dict[str, Callable[[], object]] = {}
        for identifier, reference in self.post_processors.items():
            try:
                constructors[identifier] = import_reference(reference)
            except ImportError as e:
                raise PostProcessorNotFoundError(
                    f"Post-processor [{identifier}] not found at [{reference}].\n"
                    "Please ensure that you entered a fully qualified reference and "
                    "that the module is importable.",
                    e,
                ) from e
        return constructors

    def setup_logging(self) -> None:
        """Configure logging based on settings.

        Sets up handlers for console and/or file output on the package
        logger, replacing handlers installed by an earlier call.
        """
        if not self.logging.enabled:
            return

        logger = logging.getLogger(PACKAGE_LOGGER_NAME)
        logger.setLevel(getattr(logging, self.logging.level))
        logger.handlers.clear()

        formatter = logging.Formatter(self.logging.format)

        if self.logging.console_output:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)

        if self.logging.log_file:
            log_path = Path(self.logging.log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
