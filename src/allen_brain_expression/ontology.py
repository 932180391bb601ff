"""Allen brain structure ontology (Ontology.csv) -> BrainStructureTerm records.

Columns: id, acronym, name, parent_structure_id, hemisphere, graph_order,
structure_id_path, color_hex_triplet. The structure id path (e.g. ``/4005/4006/4007/``)
lists a term's ancestors; parents are linked only when they appear earlier in the file,
which holds for the graph-ordered Allen export.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

from .converter import BaseConverter
from .tables import open_rows, require_columns

log = logging.getLogger(__name__)

ONTOLOGY_COLUMNS = 7


def normalize_color(raw: Optional[str]) -> Optional[str]:
    if not raw:
        return None
    raw = raw.strip()
    if not raw:
        return None
    return raw if raw.startswith("#") else f"#{raw}"


class BrainOntologyConverter(BaseConverter):
    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.terms: Dict[str, str] = {}

    def process(self, path: str) -> int:
        """Store one term per row; returns the number of terms stored."""
        self.get_data_set(self.config.ontology_data_set_title)
        stored = 0
        with open_rows(path, delimiter=self.config.delimiter, skip_header=True) as rows:
            for line_number, fields in rows:
                require_columns(path, line_number, fields, ONTOLOGY_COLUMNS)
                color = fields[7] if len(fields) > 7 else None
                self.store_term(fields[0].strip(), fields[1].strip(), fields[2].strip(),
                                fields[6].strip(), normalize_color(color))
                stored += 1
        log.info("Stored %d brain structure terms from %s", stored, path)
        return stored

    def parent_refs(self, identifier: str, structure_id_path: str) -> List[str]:
        refs: List[str] = []
        for parent_id in structure_id_path.split("/"):
            if not parent_id or parent_id == identifier:
                continue
            ref = self.terms.get(parent_id)
            if ref is not None:
                refs.append(ref)
        return refs

    def store_term(self, identifier: str, acronym: str, name: str, structure_id_path: str,
                   color: Optional[str] = None) -> str:
        item = self.factory.create_item("BrainStructureTerm")
        item.set_attribute("identifier", identifier)
        if acronym:
            item.set_attribute("acronym", acronym)
        if name:
            item.set_attribute("name", name)
        if color:
            item.set_attribute("colorHexTriplet", color)
        for ref in self.parent_refs(identifier, structure_id_path):
            item.add_to_collection("parents", ref)
        ref = self.store(item)
        self.terms[identifier] = ref
        return ref
