"""Store adapter persisting one YAML file per record."""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import TypeAdapter

from ...domain.models import Connection, Document, OwnerProfile, Partner, Transaction
from .memory import CONNECTIONS, DOCUMENTS, OWNERS, PARTNERS, TRANSACTIONS, InMemoryStore

logger = logging.getLogger(__name__)

ADAPTERS: dict[str, TypeAdapter] = {
    DOCUMENTS: TypeAdapter(Document),
    PARTNERS: TypeAdapter(Partner),
    TRANSACTIONS: TypeAdapter(Transaction),
    CONNECTIONS: TypeAdapter(Connection),
    OWNERS: TypeAdapter(OwnerProfile),
}


def sanitize_key(key: str) -> str:
    """Turn a record id into a safe file stem."""
    key = key.replace("\x00", "").replace("..", "_")
    key = re.sub(r"[^A-Za-z0-9._-]", "_", key)
    return key.strip(". ") or "_"


class YamlStore(InMemoryStore):
    """In-memory store mirrored to ``<base>/<collection>/<id>.yaml``.

    Everything is loaded at startup; every write rewrites one file.
    """

    def __init__(self, base_path: Path) -> None:
        super().__init__()
        self.base_path = base_path
        for collection in ADAPTERS:
            (self.base_path / collection).mkdir(parents=True, exist_ok=True)
        self._load()

    def _path(self, collection: str, key: str) -> Path:
        return self.base_path / collection / f"{sanitize_key(key)}.yaml"

    def _load(self) -> None:
        for collection, adapter in ADAPTERS.items():
            count = 0
            for path in sorted((self.base_path / collection).glob("*.yaml")):
                data = yaml.safe_load(path.read_text(encoding="utf-8"))
                record = adapter.validate_python(data)
                key = record.owner_id if collection == OWNERS else record.id
                self._data[collection][key] = record
                count += 1
            logger.debug(f"Loaded {count} {collection} from {self.base_path}")

    def _persist(self, collection: str, key: str, record: Any) -> None:
        data = ADAPTERS[collection].dump_python(record, mode="json")
        path = self._path(collection, key)
        tmp = path.with_suffix(".yaml.tmp")
        tmp.write_text(
            yaml.safe_dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False),
            encoding="utf-8",
        )
        os.replace(tmp, path)

    def _forget(self, collection: str, key: str) -> None:
        self._path(collection, key).unlink(missing_ok=True)
