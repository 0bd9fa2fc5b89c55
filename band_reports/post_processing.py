"""Post-processing of rendered documents.

A template may name a post-processor that transforms the rendered bytes
before they reach the caller, e.g. to stamp, compress or sign a document.
Post-processors are looked up by identifier in a
:class:`PostProcessorRegistry` that is populated at configuration time, so
only explicitly registered code can run for a template.

Example:
    Registering a post-processor::

        class Stamp(ReportPostProcessor):
            def post_process_report(self, document, root_band):
                return document + b"\\n-- generated --\\n"

        registry = PostProcessorRegistry()
        registry.register("reports.stamp", Stamp)
        reporting.set_post_processor_registry(registry)
"""

from abc import ABC, abstractmethod
import logging
from typing import Callable, Dict, List
import warnings

from ._warnings import ConfigurationWarning
from .band_data import BandData
from .exceptions import (
    InvalidPostProcessorError,
    PostProcessorInstantiationError,
    PostProcessorNotFoundError,
)

logger = logging.getLogger(__name__)


class ReportPostProcessor(ABC):
    """Base class for post-processors."""

    @abstractmethod
    def post_process_report(self, document: bytes, root_band: BandData) -> bytes:
        """Transform a rendered document.

        Args:
            document: Rendered bytes.
            root_band: Root of the band tree the document was rendered from.

        Returns:
            Transformed bytes.
        """


class PostProcessorRegistry:
    """Explicit mapping of post-processor identifiers to constructors.

    A fresh post-processor is constructed for every application, so
    post-processors may keep per-document state.
    """

    def __init__(self) -> None:
        self._constructors: Dict[str, Callable[[], object]] = {}

    @property
    def identifiers(self) -> List[str]:
        """Registered identifiers."""
        return list(self._constructors)

    def register(self, identifier: str, constructor: Callable[[], object]) -> None:
        """Register a post-processor constructor.

        Args:
            identifier: Identifier referenced by :attr:`ReportTemplate.post_processor`,
                conventionally the fully qualified class name.
            constructor: Zero-argument callable, usually the class itself.
        """
        if identifier in self._constructors:
            warnings.warn(
                f"Post-processor '{identifier}' replaced", ConfigurationWarning, stacklevel=2
            )
        self._constructors[identifier] = constructor

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._constructors

    def resolve(self, identifier: str) -> ReportPostProcessor:
        """Construct the post-processor registered under ``identifier``.

        Raises:
            PostProcessorNotFoundError: If nothing is registered under the identifier.
            PostProcessorInstantiationError: If the constructor fails.
            InvalidPostProcessorError: If the constructed object is not a
                :class:`ReportPostProcessor`.
        """
        constructor = self._constructors.get(identifier)
        if constructor is None:
            raise PostProcessorNotFoundError(
                f"Post-processor [{identifier}] not found.\n"
                "Please ensure that you entered the exact post-processor identifier "
                "and that the post-processor is registered (or importable, when "
                f"configured by reference). Registered: {self.identifiers}"
            )

        try:
            instance = constructor()
        except Exception as e:
            raise PostProcessorInstantiationError(
                f"An error occurred while instantiating post-processor [{identifier}].", e
            ) from e

        if not isinstance(instance, ReportPostProcessor):
            raise InvalidPostProcessorError(
                f"Post-processor [{identifier}] does not implement ReportPostProcessor "
                f"(got {type(instance).__name__})."
            )
        return instance

    def apply(self, document: bytes, identifier: str, root_band: BandData) -> bytes:
        """Run the post-processor registered under ``identifier``.

        Args:
            document: Rendered bytes.
            identifier: Post-processor identifier.
            root_band: Root band passed to the post-processor.

        Returns:
            Transformed bytes.
        """
        post_processor = self.resolve(identifier)
        logger.debug(f"Applying post-processor [{identifier}] to {len(document)} bytes")
        return post_processor.post_process_report(document, root_band)
