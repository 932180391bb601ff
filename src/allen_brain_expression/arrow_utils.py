"""Utilities for converting Items to PyArrow Tables, one table per record class.

Design goals:
- Column types come from the LinkML slot ranges, so every file of one class shares a schema.
- References become identifier columns; collections become list<string> columns.
- Column-oriented assembly in a single pass over the items.
"""
from __future__ import annotations

import hashlib
from typing import Any, Dict, Iterable, List, Optional

import pyarrow as pa

from . import DEFAULT_SCHEMA, load_schema_view
from .models import Item

# LinkML range -> Arrow type (extend as needed)
PRIMITIVE_TYPE_MAP: Dict[str, pa.DataType] = {
    "string": pa.string(),
    "integer": pa.int64(),
    "float": pa.float64(),
    "double": pa.float64(),
    "boolean": pa.bool_(),
}

IDENTIFIER_COLUMN = "identifier"


def _column_name(slot_name: str) -> str:
    # the record's own output identifier owns the "identifier" column
    return f"{slot_name}_value" if slot_name == IDENTIFIER_COLUMN else slot_name


def build_arrow_schema(class_name: str, schema_name: str = DEFAULT_SCHEMA) -> pa.Schema:
    """Build a stable Arrow schema for one record class from its LinkML slots.

    The first column always holds the item's output identifier.
    """
    sv = load_schema_view(schema_name)
    fields: List[pa.Field] = [pa.field(IDENTIFIER_COLUMN, pa.string(), nullable=False)]
    for slot_name in sv.class_slots(class_name):
        slot = sv.induced_slot(slot_name, class_name)
        rng = slot.range or "string"
        if sv.get_class(rng):
            arrow_type: pa.DataType = pa.string()
        else:
            tdef = sv.get_type(rng)
            base = getattr(tdef, "base", None) if tdef is not None else None
            arrow_type = PRIMITIVE_TYPE_MAP.get(rng) or PRIMITIVE_TYPE_MAP.get(str(base).lower(), pa.string())
        if getattr(slot, "multivalued", False):
            arrow_type = pa.list_(arrow_type)
        fields.append(pa.field(_column_name(slot_name), arrow_type, nullable=True))
    return pa.schema(fields)


def item_to_row(item: Item) -> Dict[str, Any]:
    """Flatten one Item to a row dict keyed by column name."""
    row: Dict[str, Any] = {IDENTIFIER_COLUMN: item.identifier}
    for name, value in item.attributes.items():
        row[_column_name(name)] = value
    for name, ref in item.references.items():
        row[_column_name(name)] = ref
    for name, refs in item.collections.items():
        row[_column_name(name)] = list(refs)
    return row


def items_to_table(
    items: Iterable[Item],
    class_name: str,
    schema: Optional[pa.Schema] = None,
    schema_name: str = DEFAULT_SCHEMA,
) -> pa.Table:
    """Convert Items of a single class to a PyArrow Table."""
    if schema is None:
        schema = build_arrow_schema(class_name, schema_name)
    buffers: Dict[str, List[Any]] = {field.name: [] for field in schema}  # type: ignore[arg-type]
    for item in items:
        if item.class_name != class_name:
            raise ValueError(f"Item {item.identifier} is a {item.class_name}, expected {class_name}")
        row = item_to_row(item)
        for field in schema:  # type: ignore[arg-type]
            buffers[field.name].append(row.get(field.name))
    arrays: List[pa.Array] = [pa.array(buffers[field.name], type=field.type) for field in schema]  # type: ignore[arg-type]
    return pa.Table.from_arrays(arrays, schema=schema)


def _schema_fingerprint(schema: pa.Schema) -> str:
    """Create a stable fingerprint for an Arrow schema (field names + types)."""
    parts = [f"{f.name}:{f.type}" for f in schema]
    digest = hashlib.sha256("|".join(parts).encode()).hexdigest()
    return f"sha256:{digest}"


def attach_linkml_metadata(table: pa.Table, *, linkml_class: str, linkml_schema_version: str | None = None) -> pa.Table:
    """Attach LinkML metadata (class, optional schema version, schema fingerprint) to an Arrow table."""
    meta = dict(table.schema.metadata or {})
    meta.setdefault(b"linkml_class", linkml_class.encode())
    if linkml_schema_version is None:
        from . import __version__
        linkml_schema_version = __version__
    if linkml_schema_version:
        meta.setdefault(b"linkml_schema_version", str(linkml_schema_version).encode())
    meta.setdefault(b"schema_fingerprint", _schema_fingerprint(table.schema).encode())
    return table.replace_schema_metadata(meta)


__all__ = [
    "build_arrow_schema",
    "item_to_row",
    "items_to_table",
    "attach_linkml_metadata",
]
