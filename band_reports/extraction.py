"""Band data extraction.

The executor seeds a root band with the resolved parameters and hands it to
a :class:`DataExtractor`, which attaches child bands according to the
report's band hierarchy. :class:`DefaultDataExtractor` does this by running
each band definition's queries through data loaders looked up in a
:class:`ReportLoaderFactory`.

Concrete database or script loaders live outside this package. The only
built-in loader, :class:`ParameterDataLoader`, turns parameter values into
band rows, which is enough for reports whose data is passed in by the
caller.

Example:
    Registering a loader backed by a callable::

        class CustomerLoader:
            def load_data(self, query, parent_band, params):
                return [{"name": n} for n in customers_for(params["region"])]

        factory = ReportLoaderFactory()
        factory.register("customers", CustomerLoader())
        reporting.set_loader_factory(factory)
"""

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional, Protocol
import warnings

from ._warnings import ConfigurationWarning
from .band_data import BandData
from .exceptions import (
    DataLoadingError,
    ReportingError,
    ReportingInterruptedError,
    UnsupportedLoaderError,
)
from .structure import BandDefinition, Report, ReportQuery

logger = logging.getLogger(__name__)


class ReportDataLoader(Protocol):
    """Contract for data loaders."""

    def load_data(
        self, query: ReportQuery, parent_band: BandData, params: Mapping[str, Any]
    ) -> List[Dict[str, Any]]: ...


class DataExtractor(Protocol):
    """Contract for data extractors."""

    def extract_data(self, report: Report, params: Mapping[str, Any], root_band: BandData) -> None: ...


class ParameterDataLoader:
    """Load band rows from a report parameter.

    The query script names the parameter. A mapping yields one row, a list of
    mappings yields one row per item and ``None`` yields no rows.
    """

    def load_data(
        self, query: ReportQuery, parent_band: BandData, params: Mapping[str, Any]
    ) -> List[Dict[str, Any]]:
        """Return the rows held by the parameter named in ``query.script``.

        Raises:
            DataLoadingError: If the parameter value is neither a mapping nor
                a list of mappings.
        """
        parameter_name = query.script.strip()
        value = params.get(parameter_name)
        if value is None:
            return []
        if isinstance(value, Mapping):
            return [dict(value)]
        if isinstance(value, (list, tuple)) and all(isinstance(row, Mapping) for row in value):
            return [dict(row) for row in value]
        raise DataLoadingError(
            f"Parameter [{parameter_name}] of query [{query.name}] must hold a mapping "
            f"or a list of mappings, got {type(value).__name__}"
        )


class ReportLoaderFactory:
    """Registry of data loaders keyed by loader type.

    The registry is populated at configuration time and only read while
    reports run, so one instance can serve concurrent runs.
    """

    PARAMETER_LOADER = "parameter"

    def __init__(self, register_defaults: bool = True):
        """Initialize ReportLoaderFactory.

        Args:
            register_defaults: Whether to register :class:`ParameterDataLoader`
                under ``"parameter"``.
        """
        self._loaders: Dict[str, ReportDataLoader] = {}
        if register_defaults:
            self._loaders[self.PARAMETER_LOADER] = ParameterDataLoader()

    @property
    def loader_types(self) -> List[str]:
        """Registered loader types."""
        return list(self._loaders)

    def register(self, loader_type: str, loader: ReportDataLoader) -> None:
        """Register a loader.

        Args:
            loader_type: Loader type referenced by :attr:`ReportQuery.loader_type`.
            loader: Loader instance.
        """
        key = loader_type.lower()
        if key in self._loaders:
            warnings.warn(
                f"Data loader for type '{loader_type}' replaced", ConfigurationWarning, stacklevel=2
            )
        self._loaders[key] = loader

    def create_data_loader(self, loader_type: str) -> ReportDataLoader:
        """Return the loader registered for a loader type.

        Raises:
            UnsupportedLoaderError: If no loader is registered for the type.
        """
        loader = self._loaders.get(loader_type.lower())
        if loader is None:
            raise UnsupportedLoaderError(
                f"Unsupported loader type [{loader_type}]. Registered types: {self.loader_types}"
            )
        return loader


class DefaultDataExtractor:
    """Materialize a report's band hierarchy below the root band.

    Band definitions are processed depth-first. Each row returned by a
    definition's queries becomes one band, and child definitions are
    extracted beneath every such band, so nested bands see their parent
    row through ``link_parameter_name``.

    Attributes:
        loader_factory: Source of data loaders.
        cancel_event: Optional event; when set, extraction stops with
            :class:`ReportingInterruptedError` before the next band.
        put_empty_row_if_no_data_selected: Whether a definition whose queries
            return no rows still produces one empty band.
    """

    def __init__(
        self,
        loader_factory: ReportLoaderFactory,
        cancel_event: Optional[threading.Event] = None,
        put_empty_row_if_no_data_selected: bool = True,
    ):
        self.loader_factory = loader_factory
        self.cancel_event = cancel_event
        self.put_empty_row_if_no_data_selected = put_empty_row_if_no_data_selected

    def extract_data(self, report: Report, params: Mapping[str, Any], root_band: BandData) -> None:
        """Attach bands for all first-level definitions to ``root_band``.

        Args:
            report: Report whose band hierarchy is extracted.
            params: Resolved parameters.
            root_band: Seeded root band, populated in place.

        Raises:
            ReportingInterruptedError: If the cancel event is set.
            DataLoadingError: If a loader fails.
        """
        for definition in report.root_band.children:
            root_band.first_level_band_definition_names.append(definition.name)
            self._extract_band(definition, root_band, params)

    def _extract_band(
        self, definition: BandDefinition, parent_band: BandData, params: Mapping[str, Any]
    ) -> None:
        self._check_cancelled(definition)

        rows: List[Dict[str, Any]] = []
        for query in definition.queries:
            rows.extend(self._load_rows(definition, query, parent_band, params))

        if not rows and (self.put_empty_row_if_no_data_selected or not definition.queries):
            rows = [{}]

        logger.debug(f"Band [{definition.name}] loaded {len(rows)} row(s)")
        for row in rows:
            band = BandData(definition.name, data=row)
            parent_band.add_child(band)
            for child_definition in definition.children:
                self._extract_band(child_definition, band, params)

    def _load_rows(
        self,
        definition: BandDefinition,
        query: ReportQuery,
        parent_band: BandData,
        params: Mapping[str, Any],
    ) -> List[Dict[str, Any]]:
        loader = self.loader_factory.create_data_loader(query.loader_type)
        query_params: Dict[str, Any] = {**params, **query.additional_parameters}
        if query.link_parameter_name:
            query_params[query.link_parameter_name] = parent_band.data.get(
                query.link_parameter_name
            )

        try:
            return list(loader.load_data(query, parent_band, query_params))
        except ReportingError:
            raise
        except Exception as e:
            raise DataLoadingError(
                f"An error occurred while loading data for band [{definition.name}] "
                f"and query [{query.name}]: {e}",
                e,
            ) from e

    def _check_cancelled(self, definition: BandDefinition) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise ReportingInterruptedError(
                f"Data extraction cancelled before band [{definition.name}]"
            )
