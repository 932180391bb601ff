"""Gene identifier resolution.

A resolver maps an organism-specific raw identifier (e.g. an Entrez id) to a canonical
gene identifier. Only unique mappings resolve; a raw identifier with several candidates
is reported as ambiguous rather than picking one.
"""
from __future__ import annotations

import csv
import logging
from typing import Dict, Iterable, Optional, Set, Tuple

from pydantic import Field

from .models import ConfiguredBaseModel, ResolutionStatus

log = logging.getLogger(__name__)


class Resolution(ConfiguredBaseModel):
    status: ResolutionStatus
    identifier: Optional[str] = Field(default=None, description="""Canonical identifier, set only when resolved.""")

    @property
    def resolved(self) -> bool:
        return self.status == ResolutionStatus.RESOLVED


NOT_FOUND = Resolution(status=ResolutionStatus.NOT_FOUND)
AMBIGUOUS = Resolution(status=ResolutionStatus.AMBIGUOUS)


class GeneResolver:
    """Interface: resolve a raw identifier for a taxon."""

    def resolve(self, taxon_id: str, identifier: str) -> Resolution:
        raise NotImplementedError

    def has_taxon(self, taxon_id: str) -> bool:
        raise NotImplementedError


class MappingGeneResolver(GeneResolver):
    """In-memory resolver built from explicit ``raw id -> canonical ids`` entries."""

    def __init__(self) -> None:
        self._entries: Dict[str, Dict[str, Set[str]]] = {}
        self._cache: Dict[Tuple[str, str], Resolution] = {}

    def add_entry(self, taxon_id: str, identifier: str, canonical: Iterable[str]) -> None:
        self._entries.setdefault(taxon_id, {}).setdefault(identifier, set()).update(canonical)
        self._cache.pop((taxon_id, identifier), None)

    def has_taxon(self, taxon_id: str) -> bool:
        return taxon_id in self._entries

    def count_resolutions(self, taxon_id: str, identifier: str) -> int:
        return len(self._entries.get(taxon_id, {}).get(identifier, ()))

    def resolve(self, taxon_id: str, identifier: str) -> Resolution:
        key = (taxon_id, identifier)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        candidates = self._entries.get(taxon_id, {}).get(identifier, set())
        if len(candidates) == 1:
            result = Resolution(status=ResolutionStatus.RESOLVED, identifier=next(iter(candidates)))
        elif candidates:
            result = AMBIGUOUS
        else:
            result = NOT_FOUND
        self._cache[key] = result
        return result

    @classmethod
    def from_file(cls, path: str, *, delimiter: str = "\t") -> "MappingGeneResolver":
        """Load a mapping file with columns taxon_id, identifier, canonical_identifier.

        The first row is a header. Repeating an identifier with another canonical id
        makes it ambiguous.
        """
        resolver = cls()
        rows = 0
        with open(path, newline="", encoding="utf-8") as fh:
            reader = csv.reader(fh, delimiter=delimiter)
            next(reader, None)
            for fields in reader:
                if len(fields) < 3 or not fields[1].strip() or not fields[2].strip():
                    continue
                resolver.add_entry(fields[0].strip(), fields[1].strip(), [fields[2].strip()])
                rows += 1
        log.info("Loaded %d resolver entries from %s", rows, path)
        return resolver
