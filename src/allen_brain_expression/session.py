"""Per-directory conversion state and the four expression stages.

An `ExpressionSession` owns every registry for one dataset directory:

  * ``genes``          canonical gene id -> Gene item id
  * ``probes``         raw probe id -> Probe item id
  * ``structures``     raw structure id -> Structure item id
  * ``samples``        Sample item ids in sample-file order (the column order of the wide files)
  * ``gene_to_probes`` Gene item id -> raw probe ids

Stages must run in order: `load_probes`, `load_samples`, `join_expression`, `aggregate`.
A new session is created for every directory, so nothing leaks between datasets.
"""
from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Tuple

from .aggregate import average_distinct
from .config import ConverterConfig
from .exceptions import ColumnCountError, InvalidValueError, RowCountError, StageOrderError
from .items import ItemFactory, ItemWriter
from .models import Item, ResolutionStatus
from .resolver import GeneResolver
from .tables import open_rows, require_columns

log = logging.getLogger(__name__)

PROBE_COLUMNS = 7
SAMPLE_COLUMNS = 13

# (ProbeResult item id, expression value or None)
Measurement = Tuple[str, Optional[float]]


def _parse_number(kind, path: str, line_number: int, column: int, raw: str):
    try:
        return kind(raw)
    except ValueError:
        raise InvalidValueError(path, line_number, column, raw) from None


def _parse_float(path: str, line_number: int, column: int, raw: str) -> float:
    value = _parse_number(float, path, line_number, column, raw)
    # float() also accepts "inf" and "nan"
    if not math.isfinite(value):
        raise InvalidValueError(path, line_number, column, raw)
    return value


class ExpressionSession:
    def __init__(
        self,
        writer: ItemWriter,
        factory: ItemFactory,
        resolver: GeneResolver,
        *,
        organism_ref: str,
        data_set_ref: Optional[str] = None,
        config: Optional[ConverterConfig] = None,
    ) -> None:
        self.writer = writer
        self.factory = factory
        self.resolver = resolver
        self.organism_ref = organism_ref
        self.data_set_ref = data_set_ref
        self.config = config or ConverterConfig()

        self.genes: Dict[str, str] = {}
        self.probes: Dict[str, str] = {}
        self.structures: Dict[str, str] = {}
        self.samples: List[str] = []
        self.gene_to_probes: Dict[str, List[str]] = {}
        # raw probe id -> one list of measurements (one per sample) per expression row
        self.measurements: Dict[str, List[List[Measurement]]] = {}

        self._samples_loaded = False
        self._joined = False
        self.counts: Dict[str, int] = {
            "genes": 0,
            "probes": 0,
            "skipped_probe_rows": 0,
            "structures": 0,
            "samples": 0,
            "locations": 0,
            "probe_results": 0,
            "skipped_expression_rows": 0,
            "expression_results": 0,
        }

    def _store(self, item: Item, counter: str) -> str:
        self.writer.store(item)
        self.counts[counter] += 1
        return item.identifier

    # ------------------------------------------------------------------
    # Genes and probes
    # ------------------------------------------------------------------
    def resolve_gene(self, raw_identifier: str) -> Optional[str]:
        """Canonical id for `raw_identifier`, or None when it must be skipped."""
        taxon = self.config.taxon_id
        resolution = self.resolver.resolve(taxon, raw_identifier)
        if resolution.resolved:
            return resolution.identifier
        if resolution.status == ResolutionStatus.AMBIGUOUS:
            log.info("Gene %s (taxon %s) resolves to several genes, skipping", raw_identifier, taxon)
        else:
            log.info("Gene %s (taxon %s) not found, probably an old identifier, skipping", raw_identifier, taxon)
        return None

    def get_gene(self, canonical_id: str, symbol: Optional[str] = None) -> str:
        ref = self.genes.get(canonical_id)
        if ref is None:
            gene = self.factory.create_item("Gene")
            gene.set_attribute("primaryIdentifier", canonical_id)
            if symbol:
                gene.set_attribute("symbol", symbol)
            gene.set_reference("organism", self.organism_ref)
            if self.data_set_ref:
                gene.add_to_collection("dataSets", self.data_set_ref)
            ref = self._store(gene, "genes")
            self.genes[canonical_id] = ref
            self.gene_to_probes[ref] = []
        return ref

    def load_probes(self, path: str) -> None:
        # probe_id,probe_name,gene_id,gene_symbol,gene_name,entrez_id,chromosome
        with open_rows(path, delimiter=self.config.delimiter, skip_header=True) as rows:
            for line_number, fields in rows:
                require_columns(path, line_number, fields, PROBE_COLUMNS)
                probe_id = fields[0].strip()
                probe_name = fields[1].strip()
                symbol = fields[3].strip()
                entrez_id = fields[5].strip()

                if not entrez_id:
                    self.counts["skipped_probe_rows"] += 1
                    continue
                canonical_id = self.resolve_gene(entrez_id)
                if canonical_id is None:
                    self.counts["skipped_probe_rows"] += 1
                    continue
                gene_ref = self.get_gene(canonical_id, symbol)

                probe = self.factory.create_item("Probe")
                probe.set_attribute("primaryIdentifier", probe_id)
                if probe_name:
                    probe.set_attribute("name", probe_name)
                probe.set_reference("gene", gene_ref)
                self.probes[probe_id] = self._store(probe, "probes")
                gene_probes = self.gene_to_probes[gene_ref]
                if probe_id not in gene_probes:
                    gene_probes.append(probe_id)
        log.info(
            "Loaded %d probes for %d genes from %s (%d rows skipped)",
            self.counts["probes"], self.counts["genes"], path, self.counts["skipped_probe_rows"],
        )

    # ------------------------------------------------------------------
    # Samples
    # ------------------------------------------------------------------
    def get_structure(self, structure_id: str, acronym: str, name: str) -> str:
        ref = self.structures.get(structure_id)
        if ref is None:
            structure = self.factory.create_item("Structure")
            structure.set_attribute("identifier", structure_id)
            if name:
                structure.set_attribute("name", name)
            if acronym:
                structure.set_attribute("acronym", acronym)
            ref = self._store(structure, "structures")
            self.structures[structure_id] = ref
        return ref

    def load_samples(self, path: str) -> None:
        # structure_id,slab_num,well_id,slab_type,structure_acronym,structure_name,
        # polygon_id,mri_voxel_x,mri_voxel_y,mri_voxel_z,mni_x,mni_y,mni_z
        with open_rows(path, delimiter=self.config.delimiter, skip_header=True) as rows:
            for line_number, fields in rows:
                require_columns(path, line_number, fields, SAMPLE_COLUMNS)
                values = [f.strip() for f in fields]
                structure_ref = self.get_structure(values[0], values[4], values[5])

                location = self.factory.create_item("BrainLocation")
                if values[6]:
                    location.set_attribute("polygonId", values[6])
                for column, name in enumerate(("mriVoxelX", "mriVoxelY", "mriVoxelZ"), start=7):
                    if values[column]:
                        location.set_attribute(name, _parse_number(int, path, line_number, column, values[column]))
                for column, name in enumerate(("mniX", "mniY", "mniZ"), start=10):
                    if values[column]:
                        location.set_attribute(name, _parse_float(path, line_number, column, values[column]))
                location_ref = self._store(location, "locations")

                sample = self.factory.create_item("Sample")
                for name, raw in zip(("slabNum", "wellId", "slabType"), values[1:4]):
                    if raw:
                        sample.set_attribute(name, raw)
                sample.set_reference("structure", structure_ref)
                sample.set_reference("location", location_ref)
                self.samples.append(self._store(sample, "samples"))
        self._samples_loaded = True
        log.info(
            "Loaded %d samples in %d structures from %s",
            self.counts["samples"], self.counts["structures"], path,
        )

    # ------------------------------------------------------------------
    # Expression values + PACall
    # ------------------------------------------------------------------
    def _check_width(self, path: str, line_number: int, fields: List[str]) -> None:
        data_columns = len(fields) - 1
        if data_columns != len(self.samples):
            raise ColumnCountError(path, line_number, len(self.samples), data_columns)

    def join_expression(self, expression_path: str, call_path: str) -> None:
        """Walk the expression and call files in lock-step, one ProbeResult per cell.

        Both files are trusted to list probes in the same order; only their shapes
        are checked.
        """
        if not self._samples_loaded:
            raise StageOrderError("load_samples must run before join_expression")
        detected = self.config.detection_flag
        delimiter = self.config.delimiter
        rows_read = 0
        with open_rows(expression_path, delimiter=delimiter) as expression_rows, \
                open_rows(call_path, delimiter=delimiter) as call_rows:
            while True:
                expression_row = next(expression_rows, None)
                call_row = next(call_rows, None)
                if expression_row is None and call_row is None:
                    break
                if expression_row is None:
                    raise RowCountError(expression_path, call_path, rows_read, expression_path)
                if call_row is None:
                    raise RowCountError(expression_path, call_path, rows_read, call_path)
                rows_read += 1

                expression_line, values = expression_row
                call_line, calls = call_row
                self._check_width(expression_path, expression_line, values)
                self._check_width(call_path, call_line, calls)

                probe_id = values[0].strip()
                probe_ref = self.probes.get(probe_id)
                if probe_ref is None:
                    # probe was dropped while loading probes (no gene)
                    log.debug("Probe %s has no gene, skipping expression row %d", probe_id, expression_line)
                    self.counts["skipped_expression_rows"] += 1
                    continue

                buffer: List[Measurement] = []
                self.measurements.setdefault(probe_id, []).append(buffer)
                for column, sample_ref in enumerate(self.samples, start=1):
                    call = calls[column].strip() == detected
                    value: Optional[float] = None
                    if call:
                        value = _parse_float(expression_path, expression_line, column, values[column].strip())

                    result = self.factory.create_item("ProbeResult")
                    if value is not None:
                        result.set_attribute("expressionValue", value)
                    result.set_attribute("paCall", call)
                    result.set_reference("probe", probe_ref)
                    result.set_reference("sample", sample_ref)
                    buffer.append((self._store(result, "probe_results"), value))
        self._joined = True
        log.info(
            "Created %d probe results from %d rows of %s (%d rows without a gene)",
            self.counts["probe_results"], rows_read, expression_path, self.counts["skipped_expression_rows"],
        )

    # ------------------------------------------------------------------
    # Gene-level averages
    # ------------------------------------------------------------------
    def aggregate(self) -> None:
        """Emit one ExpressionResult per (gene, sample) with at least one measurement."""
        if not self._joined:
            raise StageOrderError("join_expression must run before aggregate")
        for gene_ref, probe_ids in self.gene_to_probes.items():
            buffers = [row for p in probe_ids for row in self.measurements.get(p, ())]
            if not buffers:
                continue
            for position, sample_ref in enumerate(self.samples):
                group = [buffer[position] for buffer in buffers]
                average = average_distinct(value for _, value in group)

                result = self.factory.create_item("ExpressionResult")
                if average is not None:
                    result.set_attribute("averagedExpression", float(average))
                result.set_reference("gene", gene_ref)
                result.set_reference("sample", sample_ref)
                for probe_result_ref, _ in group:
                    result.add_to_collection("probeResults", probe_result_ref)
                self._store(result, "expression_results")
        log.info("Created %d expression results", self.counts["expression_results"])
