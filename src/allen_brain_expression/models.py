from __future__ import annotations

from enum import Enum
from typing import (
    Dict,
    List,
    Optional,
    Union
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field
)


class ConfiguredBaseModel(BaseModel):
    model_config = ConfigDict(
        validate_assignment = True,
        validate_default = True,
        extra = "forbid",
        arbitrary_types_allowed = True,
        use_enum_values = True,
        strict = False,
    )
    pass


AttributeValue = Union[bool, int, float, str]


class ResolutionStatus(str, Enum):
    RESOLVED = "RESOLVED"
    """
    The raw identifier maps to exactly one canonical identifier.
    """
    AMBIGUOUS = "AMBIGUOUS"
    """
    The raw identifier maps to more than one canonical identifier.
    """
    NOT_FOUND = "NOT_FOUND"
    """
    The raw identifier is unknown to the resolver.
    """


class Item(ConfiguredBaseModel):
    """
    A typed record handed to the persistence layer. Other records are referenced by
    their output identifier only.
    """
    class_name: str = Field(default=..., description="""Record class, one of the classes declared in the schema.""")
    identifier: str = Field(default=..., description="""Output identifier unique within one conversion run.""")
    attributes: Dict[str, AttributeValue] = Field(default_factory=dict)
    references: Dict[str, str] = Field(default_factory=dict, description="""Slot name -> identifier of the referenced record.""")
    collections: Dict[str, List[str]] = Field(default_factory=dict, description="""Slot name -> identifiers of the referenced records.""")

    def set_attribute(self, name: str, value: AttributeValue) -> None:
        if value is None or (isinstance(value, str) and not value):
            raise ValueError(f"{self.class_name}.{name}: attribute value must not be empty")
        self.attributes[name] = value

    def get_attribute(self, name: str) -> Optional[AttributeValue]:
        return self.attributes.get(name)

    def set_reference(self, name: str, identifier: str) -> None:
        if not identifier:
            raise ValueError(f"{self.class_name}.{name}: reference identifier must not be empty")
        self.references[name] = identifier

    def add_to_collection(self, name: str, identifier: str) -> None:
        self.collections.setdefault(name, []).append(identifier)

    def to_record(self) -> Dict[str, object]:
        """Plain dict form used by the file writers (empty sections dropped)."""
        data: Dict[str, object] = {"class_name": self.class_name, "identifier": self.identifier}
        for section in ("attributes", "references", "collections"):
            value = getattr(self, section)
            if value:
                data[section] = {k: (list(v) if isinstance(v, list) else v) for k, v in value.items()}
        return data


Item.model_rebuild()
