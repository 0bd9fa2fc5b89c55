"""Hierarchical band data produced by extraction and consumed by rendering.

A report's data is a tree of named bands. Each band holds a flat record of
field values and an ordered list of child bands. The root band, named
:attr:`BandData.ROOT_BAND_NAME`, carries the resolved report parameters.

Band names need not be unique. Lookups by name walk the tree depth-first in
child insertion order and return the first match, so the same tree always
yields the same band.

Example:
    Building a small tree by hand::

        root = BandData(BandData.ROOT_BAND_NAME)
        root.data["title"] = "Invoices"
        header = BandData("Header", parent=root, data={"number": 42})
        root.add_child(header)
        assert root.find_band_recursively("Header") is header
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional

from .exceptions import ReportingError


class BandData:
    """A node of the band data tree.

    Attributes:
        name: Band name as declared by the band definition.
        parent: Parent band, ``None`` for the root.
        data: Field name to value mapping.
        report_field_formats: Field format strings keyed by ``band.field`` path.
        first_level_band_definition_names: Names of the bands defined directly
            under the root, in definition order. Only meaningful on the root.
    """

    ROOT_BAND_NAME = "Root"

    def __init__(
        self,
        name: str,
        parent: Optional["BandData"] = None,
        data: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.name = name
        self.parent = parent
        self.data: Dict[str, Any] = dict(data or {})
        self.report_field_formats: Dict[str, str] = {}
        self.first_level_band_definition_names: List[str] = []
        self._children: List[BandData] = []
        self._sealed = False

    @property
    def children(self) -> List["BandData"]:
        """Child bands in insertion order (a copy)."""
        return list(self._children)

    @property
    def child_bands(self) -> Dict[str, List["BandData"]]:
        """Child bands grouped by name, preserving first-seen name order."""
        grouped: Dict[str, List[BandData]] = {}
        for child in self._children:
            grouped.setdefault(child.name, []).append(child)
        return grouped

    @property
    def level(self) -> int:
        """Depth of this band; the root is at level 0."""
        level = 0
        band = self.parent
        while band is not None:
            level += 1
            band = band.parent
        return level

    @property
    def sealed(self) -> bool:
        """Whether the band tree has been sealed against mutation."""
        return self._sealed

    def add_child(self, band: "BandData") -> None:
        """Append a child band.

        Args:
            band: Band to append. Its parent is set to this band.

        Raises:
            ReportingError: If the tree has been sealed.
        """
        self._check_mutable()
        band.parent = self
        self._children.append(band)

    def add_children(self, bands: Iterable["BandData"]) -> None:
        """Append several child bands in order."""
        for band in bands:
            self.add_child(band)

    def get_children_by_name(self, name: str) -> List["BandData"]:
        """Return the direct children with the given name, in order."""
        return [child for child in self._children if child.name == name]

    def get_child_by_name(self, name: str) -> Optional["BandData"]:
        """Return the first direct child with the given name, if any."""
        for child in self._children:
            if child.name == name:
                return child
        return None

    def find_band_recursively(self, name: str) -> Optional["BandData"]:
        """Find the first descendant band with the given name.

        The search is a pre-order depth-first traversal of the descendants
        following child insertion order. The band itself is not matched.

        Args:
            name: Band name to look for.

        Returns:
            The first matching band, or ``None`` if there is none.
        """
        for band in self._iter_descendants():
            if band.name == name:
                return band
        return None

    def get_parameter_value(self, name: str) -> Any:
        """Return a value from the root band's data (the report parameters)."""
        root = self
        while root.parent is not None:
            root = root.parent
        return root.data.get(name)

    def add_report_field_formats(self, formats: Mapping[str, str]) -> None:
        """Register field formats, typically on the root band.

        Args:
            formats: Format strings keyed by ``band.field`` path.
        """
        self._check_mutable()
        self.report_field_formats.update(formats)

    def get_field_format(self, field_name: str) -> Optional[str]:
        """Look up the format declared for a field of this band.

        Formats are stored on the root band, keyed by ``band.field``.
        """
        root = self
        while root.parent is not None:
            root = root.parent
        return root.report_field_formats.get(f"{self.name}.{field_name}")

    def visit(self, visitor: Callable[["BandData"], bool]) -> bool:
        """Visit this band and its descendants in pre-order.

        Args:
            visitor: Callable returning ``True`` to stop the traversal.

        Returns:
            ``True`` if the visitor stopped the traversal.
        """
        if visitor(self):
            return True
        return any(child.visit(visitor) for child in self._children)

    def seal(self) -> None:
        """Make the whole tree logically immutable.

        Called once extraction has finished. Band data becomes read-only and
        further calls to :meth:`add_child` raise.
        """
        for band in self._iter_tree():
            if band._sealed:
                continue
            band._sealed = True
            band.data = MappingProxyType(band.data)  # type: ignore[assignment]
            band.report_field_formats = MappingProxyType(  # type: ignore[assignment]
                band.report_field_formats
            )

    def to_dict(self) -> Dict[str, Any]:
        """Return a plain nested representation, mostly for templates and debugging."""
        return {
            "name": self.name,
            "data": dict(self.data),
            "children": [child.to_dict() for child in self._children],
        }

    def _iter_tree(self) -> Iterator["BandData"]:
        yield self
        yield from self._iter_descendants()

    def _iter_descendants(self) -> Iterator["BandData"]:
        for child in self._children:
            yield child
            yield from child._iter_descendants()

    def _check_mutable(self) -> None:
        if self._sealed:
            raise ReportingError(f"Band [{self.name}] is sealed and can no longer be modified")

    def __repr__(self) -> str:
        return f"BandData(name={self.name!r}, data={dict(self.data)!r}, children={len(self._children)})"

    def __str__(self) -> str:
        return self.name
