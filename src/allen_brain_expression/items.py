"""Item creation and the writers that hand finished Items to persistence.

Writers receive Items one at a time, in creation order, through `store`. `close` flushes
anything buffered.
"""
from __future__ import annotations

import json
import logging
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from . import DEFAULT_SCHEMA
from .models import Item
from .validation import ItemValidator

log = logging.getLogger(__name__)


class ItemFactory:
    """Create Items with run-unique identifiers of the form ``<class index>_<n>``."""

    def __init__(self) -> None:
        self._class_index: Dict[str, int] = {}
        self._counter = 0

    def create_item(self, class_name: str) -> Item:
        index = self._class_index.setdefault(class_name, len(self._class_index))
        self._counter += 1
        return Item(class_name=class_name, identifier=f"{index}_{self._counter}")


class ItemWriter:
    def store(self, item: Item) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self) -> "ItemWriter":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class MemoryItemWriter(ItemWriter):
    """Keep stored Items in memory, in store order."""

    def __init__(self) -> None:
        self.items: List[Item] = []

    def store(self, item: Item) -> None:
        self.items.append(item)

    def of_class(self, class_name: str) -> List[Item]:
        return [i for i in self.items if i.class_name == class_name]

    def by_identifier(self) -> Dict[str, Item]:
        return {i.identifier: i for i in self.items}

    def __iter__(self) -> Iterator[Item]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


class JsonlItemWriter(ItemWriter):
    """Write one JSON object per Item, flushing as each Item arrives."""

    def __init__(self, path: str) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fh = self.path.open("w", encoding="utf-8")
        self.count = 0

    def store(self, item: Item) -> None:
        self._fh.write(json.dumps(item.to_record()) + "\n")
        self.count += 1

    def close(self) -> None:
        if not self._fh.closed:
            self._fh.close()
            log.info("Wrote %s (%d items)", self.path, self.count)


class YamlItemWriter(ItemWriter):
    """Write all Items as a single YAML list on close."""

    def __init__(self, path: str) -> None:
        self.path = Path(path)
        self._records: List[dict] = []
        self._closed = False

    def store(self, item: Item) -> None:
        self._records.append(item.to_record())

    def close(self) -> None:
        if self._closed:
            return
        import yaml  # type: ignore

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(yaml.safe_dump(self._records, sort_keys=False), encoding="utf-8")
        self._closed = True
        log.info("Wrote %s (%d items)", self.path, len(self._records))


class ParquetItemWriter(ItemWriter):
    """Buffer Items per class and write one Parquet file per class on close."""

    def __init__(self, directory: str, schema_name: str = DEFAULT_SCHEMA) -> None:
        self.directory = Path(directory)
        self.schema_name = schema_name
        self._buffers: Dict[str, List[Item]] = defaultdict(list)
        self._closed = False

    def store(self, item: Item) -> None:
        self._buffers[item.class_name].append(item)

    def close(self) -> None:
        if self._closed:
            return
        import pyarrow.parquet as pq

        from .arrow_utils import attach_linkml_metadata, build_arrow_schema, items_to_table

        self.directory.mkdir(parents=True, exist_ok=True)
        for class_name, items in self._buffers.items():
            schema = build_arrow_schema(class_name, self.schema_name)
            table = attach_linkml_metadata(items_to_table(items, class_name, schema), linkml_class=class_name)
            out = self.directory / f"{class_name}.parquet"
            pq.write_table(table, out)
            log.info("Wrote %s (%d rows)", out, table.num_rows)
        self._closed = True


class ValidatingItemWriter(ItemWriter):
    """Validate each Item against the schema before passing it on."""

    def __init__(self, inner: ItemWriter, validator: Optional[ItemValidator] = None) -> None:
        self.inner = inner
        self.validator = validator or ItemValidator()

    def store(self, item: Item) -> None:
        self.inner.store(self.validator.validate(item))

    def close(self) -> None:
        self.inner.close()


def open_writer(fmt: str, out: str, schema_name: str = DEFAULT_SCHEMA) -> ItemWriter:
    """Writer for an output format name ('parquet', 'jsonl' or 'yaml')."""
    if fmt == "parquet":
        return ParquetItemWriter(out, schema_name)
    if fmt == "jsonl":
        return JsonlItemWriter(out)
    if fmt == "yaml":
        return YamlItemWriter(out)
    raise ValueError(f"Unknown output format: {fmt}")
