"""Static, persona-partitioned corpus of commentary quotes."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Iterator, Mapping

from models import Quote
from services.errors import DataUnavailable

logger = logging.getLogger(__name__)


class Corpus:
    """Immutable mapping of partition key -> quotes in file order."""

    def __init__(self, partitions: Mapping[str, tuple[Quote, ...]]) -> None:
        self._partitions = MappingProxyType(dict(partitions))

    def partition(self, key: str) -> tuple[Quote, ...]:
        return self._partitions.get(key, ())

    @property
    def partition_keys(self) -> list[str]:
        return list(self._partitions)

    def __iter__(self) -> Iterator[tuple[str, Quote]]:
        for key, quotes in self._partitions.items():
            for quote in quotes:
                yield key, quote

    def __len__(self) -> int:
        return sum(len(q) for q in self._partitions.values())


class QuoteCorpusStore:
    """
    Loads `<partition>.json` files from a directory. Each file is a JSON array
    of quote records, e.g. `peter-drury.json` holds the peter-drury partition.
    """

    def __init__(self, corpus_dir: Path | str) -> None:
        self.corpus_dir = Path(corpus_dir)

    def load(self) -> Corpus:
        if not self.corpus_dir.is_dir():
            raise DataUnavailable(f"Corpus directory not found: {self.corpus_dir}")

        partitions: dict[str, tuple[Quote, ...]] = {}
        for path in sorted(self.corpus_dir.glob("*.json")):
            partitions[path.stem] = self._load_partition(path)

        corpus = Corpus(partitions)
        logger.info(
            "[quote_corpus] Loaded %d quotes across %d partitions from %s",
            len(corpus),
            len(partitions),
            self.corpus_dir,
        )
        return corpus

    def _load_partition(self, path: Path) -> tuple[Quote, ...]:
        try:
            records = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise DataUnavailable(f"Could not read corpus file {path.name}: {exc}") from exc
        if not isinstance(records, list):
            raise DataUnavailable(f"Corpus file {path.name} must hold a JSON array")
        try:
            return tuple(Quote.from_dict(record) for record in records)
        except (KeyError, TypeError, ValueError) as exc:
            raise DataUnavailable(f"Malformed quote record in {path.name}: {exc}") from exc
