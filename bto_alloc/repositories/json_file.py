"""JSON file repository: one document per collection."""

import json
import logging
import os
from pathlib import Path

from bto_alloc.exceptions import RepositoryError
from bto_alloc.repositories.base import SnapshotRepository
from bto_alloc.repositories.serialization import DECODERS, to_dict

logger = logging.getLogger(__name__)


class JsonFileRepository(SnapshotRepository):
    """Persist each collection as ``<data_dir>/<collection>.json``."""

    def __init__(self, data_dir: str | Path, pretty: bool = False) -> None:
        """Initialize JSON file repository.

        Parameters
        ----------
        data_dir : str | Path
            Directory holding the JSON documents.
        pretty : bool
            Pretty-print JSON output.
        """
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.pretty = pretty
        self._counts: dict[str, int] = {}

    def path_for(self, collection: str) -> Path:
        return self.data_dir / f"{collection}.json"

    def _read(self, collection: str) -> list:
        file_path = self.path_for(collection)
        if not file_path.exists():
            return []
        try:
            with open(file_path, encoding="utf-8") as f:
                rows = json.load(f)
        except (OSError, ValueError) as e:
            raise RepositoryError(f"Cannot read {file_path}: {e}") from e

        decode = DECODERS[collection]
        try:
            return [decode(row) for row in rows]
        except (KeyError, TypeError, ValueError) as e:
            raise RepositoryError(f"Malformed record in {file_path}: {e}") from e

    def _write(self, collection: str, records: list) -> None:
        """Write the snapshot through a temporary file, then swap it in."""
        file_path = self.path_for(collection)
        tmp_path = file_path.with_suffix(".json.tmp")
        data = [to_dict(record) for record in records]

        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                if self.pretty:
                    json.dump(data, f, indent=2, ensure_ascii=False, default=str)
                else:
                    json.dump(data, f, ensure_ascii=False, default=str)
            os.replace(tmp_path, file_path)
        except OSError as e:
            raise RepositoryError(f"Cannot write {file_path}: {e}") from e

        self._counts[collection] = len(records)
        logger.debug("Wrote %d %s to %s", len(records), collection, file_path)

    def summary(self) -> dict[str, int]:
        """Record counts of the last write per collection."""
        return dict(self._counts)
