"""Allen Brain Expression package.

Converts Allen Human Brain Atlas microarray dataset directories into a graph of typed
records (Items) and averages per-probe measurements into per-gene-per-sample results.
See `schemas/` for the authoritative record definitions.
"""
from __future__ import annotations

from importlib import resources as _resources
from pathlib import Path as _Path
from functools import lru_cache as _lru_cache
from typing import Any, List

__all__ = [
    "get_schema_path",
    "load_schema_text",
    "load_schema_view",
    "record_class_names",
    "__version__",
]

__version__ = "0.1.0"

DEFAULT_SCHEMA = "expression_schema.yaml"


def get_schema_path(name: str = DEFAULT_SCHEMA) -> str:
    """Return absolute path to a schema file stored under the package's schemas directory.

    Parameters
    ----------
    name: str
        Schema filename relative to the installed package schema directory.
    """
    with _resources.as_file(_resources.files(__package__) / "schemas" / name) as p:
        return str(p.resolve())


def load_schema_text(name: str = DEFAULT_SCHEMA) -> str:
    path = get_schema_path(name)
    return _Path(path).read_text(encoding="utf-8")


@_lru_cache(maxsize=4)
def load_schema_view(name: str = DEFAULT_SCHEMA) -> Any:
    """Return a cached `linkml_runtime.SchemaView` for the named schema."""
    from linkml_runtime import SchemaView  # type: ignore

    # pass the file path so imports resolve relative to the schema
    return SchemaView(get_schema_path(name))


def record_class_names(name: str = DEFAULT_SCHEMA) -> List[str]:
    """Names of all record classes declared in the schema, in declaration order."""
    sv = load_schema_view(name)
    return list(sv.all_classes().keys())  # type: ignore[attr-defined]
