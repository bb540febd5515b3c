"""Database schema detection and property payload shaping.

Notion rejects a property value whose shape does not match the field's
type: a ``select`` wants ``{"select": {"name": ...}}`` while a
``multi_select`` wants a list.  :class:`SchemaAdapter` looks the type up
instead of guessing, so callers write *logical* metadata ("category is
guides") and get the payload the target database actually accepts.

Field types are cached per database in a :class:`PropertyTypeCache` that
the caller owns and injects.  An entry is only ever replaced whole, and is
dropped when Notion reports a type mismatch so the next lookup re-detects.
"""

from __future__ import annotations

from typing import Any

from notiondocs.errors import RemoteRequestError
from notiondocs.models import ConversionWarning, PageMetadata
from notiondocs.notion_api.databases import AsyncDatabaseAPI
from notiondocs.observability import get_logger

log = get_logger("notiondocs.schema")

DESCRIPTION_FIELD = "Description"
CATEGORY_FIELD = "Category"
TAGS_FIELD = "Tags"
STATUS_FIELD = "Status"
DEFAULT_TITLE_FIELD = "title"

STATUS_OPTIONS: tuple[tuple[str, str], ...] = (
    ("published", "green"),
    ("draft", "yellow"),
    ("archived", "gray"),
    ("review", "blue"),
)

_REQUIRED_FIELDS: dict[str, dict[str, Any]] = {
    DESCRIPTION_FIELD: {"rich_text": {}},
    TAGS_FIELD: {"multi_select": {}},
    STATUS_FIELD: {
        "select": {
            "options": [{"name": name, "color": color} for name, color in STATUS_OPTIONS],
        }
    },
}

_TRUTHY_STRINGS = frozenset({"true", "yes", "1", "on", "checked"})


class PropertyTypeCache:
    """``database_id -> {field_name: field_type}``.

    Entries are written whole with :meth:`put`; there is no per-field
    update, so a concurrent reader sees either the old map or the new one.
    """

    def __init__(self) -> None:
        self._entries: dict[str, dict[str, str]] = {}

    def get(self, collection_id: str) -> dict[str, str] | None:
        return self._entries.get(collection_id)

    def put(self, collection_id: str, fields: dict[str, str]) -> None:
        self._entries[collection_id] = dict(fields)

    def invalidate(self, collection_id: str) -> None:
        self._entries.pop(collection_id, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, collection_id: object) -> bool:
        return collection_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def field_types(database: dict[str, Any]) -> dict[str, str]:
    """Extract ``{field_name: type}`` from a retrieved database object."""
    properties = database.get("properties") or {}
    return {
        name: prop.get("type", "")
        for name, prop in properties.items()
        if isinstance(prop, dict)
    }


def _as_text(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def _as_names(value: Any) -> list[dict[str, str]]:
    if isinstance(value, (list, tuple)):
        return [{"name": str(v)} for v in value if str(v)]
    return [{"name": str(value)}]


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY_STRINGS
    return bool(value)


def _as_number(value: Any) -> int | float:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    return float(value)


class SchemaAdapter:
    """Shape logical metadata values for a database's actual field types.

    Parameters
    ----------
    databases:
        Database endpoint wrapper used to fetch and extend schemas.
    cache:
        The :class:`PropertyTypeCache` to read and fill.  A fresh one is
        created when omitted.

    Attributes
    ----------
    warnings:
        :class:`ConversionWarning` records for fields that were skipped.
        Each operation gets its own adapter over the shared cache.
    """

    def __init__(
        self,
        databases: AsyncDatabaseAPI,
        cache: PropertyTypeCache | None = None,
    ) -> None:
        self._databases = databases
        self.cache = cache if cache is not None else PropertyTypeCache()
        self.warnings: list[ConversionWarning] = []

    # -- schema lookup -----------------------------------------------------

    async def _field_map(self, collection_id: str) -> dict[str, str] | None:
        cached = self.cache.get(collection_id)
        if cached is not None:
            return cached
        try:
            database = await self._databases.retrieve(collection_id)
        except RemoteRequestError as exc:
            log.warning(
                "Failed to fetch database schema",
                extra={
                    "extra_fields": {
                        "op": "get_field_type",
                        "database_id": collection_id,
                        "error": exc.message,
                    }
                },
            )
            return None
        fields = field_types(database)
        self.cache.put(collection_id, fields)
        log.debug(
            "Cached database schema",
            extra={
                "extra_fields": {
                    "database_id": collection_id,
                    "fields": sorted(fields),
                }
            },
        )
        return fields

    async def get_field_type(self, collection_id: str, field_name: str) -> str | None:
        """Return the Notion type of *field_name*, or ``None`` if absent.

        A failed schema fetch is logged and also yields ``None``.
        """
        fields = await self._field_map(collection_id)
        if fields is None:
            return None
        return fields.get(field_name) or None

    async def title_property_name(self, collection_id: str) -> str:
        """Name of the database's ``title`` field, ``"title"`` if unknown."""
        fields = await self._field_map(collection_id)
        for name, field_type in (fields or {}).items():
            if field_type == "title":
                return name
        return DEFAULT_TITLE_FIELD

    def invalidate(self, collection_id: str) -> None:
        self.cache.invalidate(collection_id)

    # -- payload shaping ---------------------------------------------------

    def _skip(self, code: str, message: str, **context: Any) -> bool:
        self.warnings.append(ConversionWarning(code=code, message=message, context=context))
        log.warning(message, extra={"extra_fields": {"op": "set_field_value", **context}})
        return False

    async def set_field_value(
        self,
        payload: dict[str, Any],
        field_name: str,
        value: Any,
        collection_id: str,
    ) -> bool:
        """Write *value* into *payload* shaped for the field's detected type.

        Parameters
        ----------
        payload:
            The ``properties`` dict being built; mutated in place.
        field_name:
            Database field to set.
        value:
            Logical value.  Lists are accepted for every type; scalar
            types join them (text) or take the first item (select, status).
        collection_id:
            The database the page belongs to.

        Returns
        -------
        bool
            ``True`` if a fragment was written.  Absent fields, unsupported
            types and unconvertible values are skipped with a warning.
        """
        field_type = await self.get_field_type(collection_id, field_name)
        if field_type is None:
            return self._skip(
                "FIELD_NOT_FOUND",
                f"Property {field_name} not found in database schema",
                field=field_name,
                database_id=collection_id,
            )

        if field_type in ("select", "status"):
            if isinstance(value, (list, tuple)):
                value = value[0] if value else ""
            payload[field_name] = {field_type: {"name": str(value)}}
        elif field_type == "multi_select":
            payload[field_name] = {"multi_select": _as_names(value)}
        elif field_type in ("title", "rich_text"):
            payload[field_name] = {field_type: [{"text": {"content": _as_text(value)}}]}
        elif field_type == "checkbox":
            payload[field_name] = {"checkbox": _as_bool(value)}
        elif field_type == "number":
            try:
                number = _as_number(value)
            except (TypeError, ValueError):
                return self._skip(
                    "INVALID_FIELD_VALUE",
                    f"Value {value!r} is not a number for {field_name}",
                    field=field_name,
                    field_type=field_type,
                )
            payload[field_name] = {"number": number}
        elif field_type == "url":
            payload[field_name] = {"url": str(value)}
        else:
            return self._skip(
                "UNSUPPORTED_FIELD_TYPE",
                f"Unsupported property type {field_type} for {field_name}",
                field=field_name,
                field_type=field_type,
            )

        log.debug(
            "Set property value",
            extra={"extra_fields": {"field": field_name, "field_type": field_type}},
        )
        return True

    async def build_metadata_properties(
        self,
        collection_id: str,
        metadata: PageMetadata | None,
    ) -> dict[str, Any]:
        """Shape Description, Category, Tags and Status for *collection_id*."""
        properties: dict[str, Any] = {}
        if metadata is None:
            return properties
        if metadata.description:
            await self.set_field_value(properties, DESCRIPTION_FIELD, metadata.description, collection_id)
        if metadata.category:
            await self.set_field_value(properties, CATEGORY_FIELD, metadata.category, collection_id)
        if metadata.tags:
            await self.set_field_value(properties, TAGS_FIELD, list(metadata.tags), collection_id)
        if metadata.status:
            await self.set_field_value(properties, STATUS_FIELD, metadata.status, collection_id)
        return properties

    async def build_page_properties(
        self,
        collection_id: str,
        title: str,
        metadata: PageMetadata | None = None,
    ) -> dict[str, Any]:
        """Title plus metadata properties for a new page in *collection_id*."""
        title_field = await self.title_property_name(collection_id)
        properties: dict[str, Any] = {
            title_field: {
                "type": "title",
                "title": [{"type": "text", "text": {"content": title or "Untitled"}}],
            }
        }
        properties.update(await self.build_metadata_properties(collection_id, metadata))
        return properties

    # -- schema changes ----------------------------------------------------

    async def ensure_fields(self, collection_id: str) -> list[str]:
        """Create the Description, Tags and Status fields if they are missing.

        Category is never created; its type is whatever the database owner
        chose.  Failures are logged and swallowed into an empty result so
        page creation can continue against the existing schema.

        Returns
        -------
        list[str]
            Names of the fields that were added.
        """
        try:
            database = await self._databases.retrieve(collection_id)
        except RemoteRequestError as exc:
            log.warning(
                "Failed to fetch database schema",
                extra={
                    "extra_fields": {
                        "op": "ensure_fields",
                        "database_id": collection_id,
                        "error": exc.message,
                    }
                },
            )
            return []

        existing = field_types(database)
        missing = {
            name: config
            for name, config in _REQUIRED_FIELDS.items()
            if name not in existing
        }
        if CATEGORY_FIELD not in existing:
            log.info(
                "Category property not found in database",
                extra={"extra_fields": {"database_id": collection_id}},
            )

        if not missing:
            self.cache.put(collection_id, existing)
            return []

        try:
            await self._databases.update(collection_id, missing)
        except RemoteRequestError as exc:
            log.warning(
                "Failed to add database properties",
                extra={
                    "extra_fields": {
                        "op": "ensure_fields",
                        "database_id": collection_id,
                        "fields": sorted(missing),
                        "error": exc.message,
                    }
                },
            )
            return []
        finally:
            self.invalidate(collection_id)

        log.info(
            "Added database properties",
            extra={
                "extra_fields": {
                    "database_id": collection_id,
                    "fields": sorted(missing),
                }
            },
        )
        return sorted(missing)
