"""Directory converter for Allen Human Brain Atlas microarray downloads.

Each dataset directory holds one donor's Probes.csv, SampleAnnot.csv,
MicroarrayExpression.csv and PACall.csv. A directory is converted in one pass:

  1. probes   (gene resolution, probe -> gene and gene -> probes indexes)
  2. samples  (structures, locations, sample column order)
  3. join     (MicroarrayExpression.csv + PACall.csv, one ProbeResult per cell)
  4. average  (one ExpressionResult per gene and sample)

The order matters: every later stage reads registries filled by the earlier ones.
"""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from pydantic import Field

from .config import ConverterConfig
from .exceptions import MissingInputFileError
from .items import ItemFactory, ItemWriter
from .models import ConfiguredBaseModel
from .resolver import GeneResolver
from .session import ExpressionSession

log = logging.getLogger(__name__)


class ConversionReport(ConfiguredBaseModel):
    """Counts collected while converting one dataset directory."""
    directory: str
    counts: Dict[str, int] = Field(default_factory=dict)
    seconds: float = 0.0


class BaseConverter:
    """Shared plumbing: item factory, writer, organism and data set records."""

    def __init__(self, writer: ItemWriter, config: Optional[ConverterConfig] = None,
                 factory: Optional[ItemFactory] = None) -> None:
        self.writer = writer
        self.config = config or ConverterConfig()
        self.factory = factory or ItemFactory()
        self._organisms: Dict[str, str] = {}
        self._data_sources: Dict[str, str] = {}
        self._data_sets: Dict[str, str] = {}

    def store(self, item) -> str:
        self.writer.store(item)
        return item.identifier

    def get_organism(self, taxon_id: str) -> str:
        ref = self._organisms.get(taxon_id)
        if ref is None:
            organism = self.factory.create_item("Organism")
            organism.set_attribute("taxonId", taxon_id)
            ref = self.store(organism)
            self._organisms[taxon_id] = ref
        return ref

    def get_data_source(self, name: str) -> str:
        ref = self._data_sources.get(name)
        if ref is None:
            source = self.factory.create_item("DataSource")
            source.set_attribute("name", name)
            ref = self.store(source)
            self._data_sources[name] = ref
        return ref

    def get_data_set(self, title: str) -> str:
        ref = self._data_sets.get(title)
        if ref is None:
            data_set = self.factory.create_item("DataSet")
            data_set.set_attribute("name", title)
            data_set.set_reference("dataSource", self.get_data_source(self.config.data_source_name))
            ref = self.store(data_set)
            self._data_sets[title] = ref
        return ref

    def close(self) -> None:
        self.writer.close()


class AllenBrainExpressionConverter(BaseConverter):
    def __init__(self, writer: ItemWriter, resolver: GeneResolver,
                 config: Optional[ConverterConfig] = None, factory: Optional[ItemFactory] = None) -> None:
        super().__init__(writer, config, factory)
        self.resolver = resolver
        if not resolver.has_taxon(self.config.taxon_id):
            log.warning("Gene resolver has no entries for taxon %s; every probe will be skipped",
                        self.config.taxon_id)

    def required_files(self, directory: Path) -> Dict[str, str]:
        """Map each required file name to its path, failing before anything is emitted."""
        cfg = self.config
        found: Dict[str, str] = {}
        for name in (cfg.probes_file, cfg.samples_file, cfg.expression_file, cfg.call_file):
            path = directory / name
            if not path.is_file():
                raise MissingInputFileError(str(directory), name)
            found[name] = str(path)
        return found

    def new_session(self) -> ExpressionSession:
        return ExpressionSession(
            self.writer,
            self.factory,
            self.resolver,
            organism_ref=self.get_organism(self.config.taxon_id),
            data_set_ref=self.get_data_set(self.config.data_set_title),
            config=self.config,
        )

    def process(self, directory: str) -> ConversionReport:
        """Convert one dataset directory with a fresh session."""
        start = time.perf_counter()
        data_dir = Path(directory)
        files = self.required_files(data_dir)
        cfg = self.config

        session = self.new_session()
        # don't change order
        session.load_probes(files[cfg.probes_file])
        session.load_samples(files[cfg.samples_file])
        session.join_expression(files[cfg.expression_file], files[cfg.call_file])
        session.aggregate()

        report = ConversionReport(
            directory=str(data_dir),
            counts=dict(session.counts),
            seconds=round(time.perf_counter() - start, 3),
        )
        log.info("Converted %s in %.3f s: %s", data_dir, report.seconds, report.counts)
        return report

    def process_all(self, directories: Iterable[str]) -> List[ConversionReport]:
        return [self.process(d) for d in directories]
