"""
Mapping Record Classes

Typed, immutable representation of the field-mapping workbook. A MappingSet
is loaded once per run and shared read-only by every ticket worker.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from loguru import logger

from errors import ConfigError

CATALOG_ATTRIBUTES = (
    "AreaPath",
    "IterationPath",
    "TeamProject",
    "Developer",
    "Tester",
    "WorkItemType",
    "AssignedTo",
)

FETCH_QUERY_KEY = "FS_FETCH_QUERY"


class Direction(Enum):
    """Sync direction; values are the spellings used in the workbook."""
    SOURCE_TO_TARGET = "FS_TO_ADO"
    TARGET_TO_SOURCE = "ADO_TO_FS"

    @classmethod
    def parse(cls, raw: str) -> 'Direction':
        try:
            return cls(raw.strip().upper())
        except ValueError:
            allowed = ", ".join(member.value for member in cls)
            raise ConfigError(f"Invalid direction '{raw}'. Expected one of: {allowed}") from None


class FieldType(Enum):
    """Value conversion applied when writing back to Freshservice."""
    TEXT = "text"
    DATE = "date"
    UNTYPED = ""

    @classmethod
    def parse(cls, raw: str) -> 'FieldType':
        try:
            return cls(raw.strip().lower())
        except ValueError:
            raise ConfigError(f"Invalid field type '{raw}'. Expected 'text', 'date' or empty") from None


def _require(value: str, label: str) -> None:
    if not value or not value.strip():
        raise ConfigError(f"{label} must not be empty")


@dataclass(frozen=True)
class SingleFieldMapping:
    """One field copied between a ticket and a work item."""
    source_field: str
    target_field: str
    direction: Direction
    is_custom: bool = False
    is_multi_select: bool = False
    value_type: FieldType = FieldType.UNTYPED

    def validate(self) -> None:
        _require(self.source_field, "FS-Field-Key")
        _require(self.target_field, "ADO-Field-Key")


@dataclass(frozen=True)
class RepositoryMapping:
    """One labelled block of the aggregated reproduction-steps description."""
    source_field: str
    title_text: str
    direction: Direction = Direction.SOURCE_TO_TARGET
    is_custom: bool = False
    is_multi_select: bool = False

    def validate(self) -> None:
        _require(self.source_field, "FS-Field-Key")
        _require(self.title_text, "TitleText")


@dataclass(frozen=True)
class ProductFieldMapping:
    """Work item field filled from a product catalog attribute."""
    target_field: str
    catalog_key: str
    direction: Direction = Direction.SOURCE_TO_TARGET

    def validate(self) -> None:
        _require(self.target_field, "ADO-Field-Key")
        _require(self.catalog_key, "ProductsDataSheetKey")


@dataclass(frozen=True)
class ProductCatalogEntry:
    """Routing attributes for one (product name, product version) pair."""
    product_name: str
    product_version: str
    attributes: Tuple[Tuple[str, str], ...] = ()

    def validate(self) -> None:
        _require(self.product_name, "ProductName")
        _require(self.product_version, "ProductVersion")

    def has_attribute(self, key: str) -> bool:
        return key in ("ProductName", "ProductVersion") or key in dict(self.attributes)

    def get(self, key: str) -> Optional[str]:
        if key == "ProductName":
            return self.product_name
        if key == "ProductVersion":
            return self.product_version
        return dict(self.attributes).get(key)


@dataclass(frozen=True)
class UrlEntry:
    """Key/value row of the URL sheet."""
    key: str
    value: str

    def validate(self) -> None:
        _require(self.key, "Key")
        _require(self.value, "Value")


@dataclass(frozen=True)
class MappingSet:
    """
    Validated mapping configuration for one run.

    Build it with ``MappingSet.create`` so every record is checked; a single
    invalid record fails the whole set.
    """
    single_fields: Tuple[SingleFieldMapping, ...] = ()
    repository: Tuple[RepositoryMapping, ...] = ()
    product_field_mappings: Tuple[ProductFieldMapping, ...] = ()
    catalog: Tuple[ProductCatalogEntry, ...] = ()
    urls: Tuple[UrlEntry, ...] = ()
    _catalog_index: Dict[Tuple[str, str], ProductCatalogEntry] = field(
        default_factory=dict, compare=False, repr=False
    )

    @classmethod
    def create(
        cls,
        single_fields: List[SingleFieldMapping],
        repository: List[RepositoryMapping],
        product_field_mappings: List[ProductFieldMapping],
        catalog: List[ProductCatalogEntry],
        urls: List[UrlEntry],
    ) -> 'MappingSet':
        """
        Validate every record and freeze them into a MappingSet.

        Raises:
            ConfigError: If any record is invalid
        """
        groups = (
            ("SingleField", single_fields),
            ("Repo", repository),
            ("ProductsFields", product_field_mappings),
            ("ProductsData", catalog),
            ("URL", urls),
        )
        for sheet_name, records in groups:
            for index, record in enumerate(records, start=1):
                try:
                    record.validate()
                except ConfigError as e:
                    raise ConfigError(f"{sheet_name} record {index} is invalid: {e}") from None

        index: Dict[Tuple[str, str], ProductCatalogEntry] = {}
        for entry in catalog:
            key = (entry.product_name, entry.product_version)
            if key in index:
                logger.warning("Duplicate product catalog row for {} {}; keeping the first", *key)
                continue
            index[key] = entry

        mapping_set = cls(
            single_fields=tuple(single_fields),
            repository=tuple(repository),
            product_field_mappings=tuple(product_field_mappings),
            catalog=tuple(catalog),
            urls=tuple(urls),
            _catalog_index=index,
        )
        mapping_set._warn_unknown_catalog_keys()
        return mapping_set

    def _warn_unknown_catalog_keys(self) -> None:
        if not self.catalog:
            return
        for mapping in self.product_field_mappings:
            if not any(entry.has_attribute(mapping.catalog_key) for entry in self.catalog):
                logger.warning(
                    "Product field mapping for {} uses unknown ProductsData column '{}'",
                    mapping.target_field,
                    mapping.catalog_key,
                )

    def fields_for(self, direction: Direction) -> List[SingleFieldMapping]:
        """Single-field mappings for one direction, in workbook order."""
        return [mapping for mapping in self.single_fields if mapping.direction == direction]

    def repository_fields(self) -> List[RepositoryMapping]:
        return [mapping for mapping in self.repository if mapping.direction == Direction.SOURCE_TO_TARGET]

    def product_fields(self) -> List[ProductFieldMapping]:
        return [
            mapping for mapping in self.product_field_mappings
            if mapping.direction == Direction.SOURCE_TO_TARGET
        ]

    def product_catalog_lookup(self, name: object, version: object) -> Optional[ProductCatalogEntry]:
        """Catalog row for a product name and version, or None."""
        if name is None or version is None:
            return None
        return self._catalog_index.get((str(name).strip(), str(version).strip()))

    def url_value(self, key: str) -> Optional[str]:
        for entry in self.urls:
            if entry.key == key:
                return entry.value
        return None

    @property
    def fetch_query(self) -> Optional[str]:
        """Freshservice filter expression from the URL sheet."""
        return self.url_value(FETCH_QUERY_KEY)
