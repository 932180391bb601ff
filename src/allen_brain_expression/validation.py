"""Schema-driven validation of Items.

Slot definitions come from the LinkML schema through `SchemaView`; nothing about the
record classes is hard-coded here.
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Tuple

from . import DEFAULT_SCHEMA, load_schema_view
from .exceptions import ItemValidationError
from .models import Item

# LinkML range -> accepted Python types
PRIMITIVE_TYPE_MAP: Dict[str, Tuple[type, ...]] = {
    "string": (str,),
    "integer": (int,),
    "float": (float, int),
    "double": (float, int),
    "boolean": (bool,),
}


class _SlotInfo:
    __slots__ = ("name", "range", "is_object", "multivalued", "required", "pattern")

    def __init__(self, name: str, range_: str, is_object: bool, multivalued: bool, required: bool,
                 pattern: Optional[str]) -> None:
        self.name = name
        self.range = range_
        self.is_object = is_object
        self.multivalued = multivalued
        self.required = required
        self.pattern = pattern


class ItemValidator:
    """Check Items against the record classes of a LinkML schema."""

    def __init__(self, schema_name: str = DEFAULT_SCHEMA) -> None:
        self.sv = load_schema_view(schema_name)
        self._slots: Dict[str, Dict[str, _SlotInfo]] = {}

    def slots_for(self, class_name: str) -> Dict[str, _SlotInfo]:
        cached = self._slots.get(class_name)
        if cached is not None:
            return cached
        if not self.sv.get_class(class_name):
            raise ItemValidationError(class_name, "class not declared in schema")
        slots: Dict[str, _SlotInfo] = {}
        # induced_slot captures class-specific attribute definitions
        for slot_name in self.sv.class_slots(class_name):
            slot = self.sv.induced_slot(slot_name, class_name)
            rng = slot.range or "string"
            pattern = getattr(slot, "pattern", None)
            tdef = self.sv.get_type(rng) if not self.sv.get_class(rng) else None
            if not pattern and tdef is not None:
                pattern = getattr(tdef, "pattern", None)
            slots[slot_name] = _SlotInfo(
                slot_name,
                rng,
                bool(self.sv.get_class(rng)),
                bool(getattr(slot, "multivalued", False)),
                bool(getattr(slot, "required", False)),
                pattern,
            )
        self._slots[class_name] = slots
        return slots

    def errors(self, item: Item) -> List[str]:
        """Return human-readable problems with `item`; empty when it is valid."""
        slots = self.slots_for(item.class_name)
        problems: List[str] = []

        for name, value in item.attributes.items():
            info = slots.get(name)
            if info is None:
                problems.append(f"unknown attribute '{name}'")
                continue
            if info.is_object or info.multivalued:
                problems.append(f"'{name}' is not a scalar slot")
                continue
            problems.extend(self._check_scalar(info, value))

        for name in item.references:
            info = slots.get(name)
            if info is None:
                problems.append(f"unknown reference '{name}'")
            elif not info.is_object or info.multivalued:
                problems.append(f"'{name}' is not a single-valued reference slot")

        for name in item.collections:
            info = slots.get(name)
            if info is None:
                problems.append(f"unknown collection '{name}'")
            elif not info.is_object or not info.multivalued:
                problems.append(f"'{name}' is not a multivalued reference slot")

        for name, info in slots.items():
            if not info.required:
                continue
            present = name in item.attributes or name in item.references or bool(item.collections.get(name))
            if not present:
                problems.append(f"missing required slot '{name}'")
        return problems

    def validate(self, item: Item) -> Item:
        problems = self.errors(item)
        if problems:
            raise ItemValidationError(item.class_name, "; ".join(problems), item.identifier)
        return item

    @staticmethod
    def _check_scalar(info: _SlotInfo, value: Any) -> List[str]:
        accepted = PRIMITIVE_TYPE_MAP.get(info.range, (str,))
        # bool is an int subclass; only boolean slots accept it
        if isinstance(value, bool) and bool not in accepted:
            return [f"'{info.name}' expects {info.range}, got boolean"]
        if not isinstance(value, accepted):
            return [f"'{info.name}' expects {info.range}, got {type(value).__name__}"]
        if info.pattern and isinstance(value, str) and not re.match(info.pattern, value):
            return [f"'{info.name}' value '{value}' does not match pattern {info.pattern}"]
        return []
