"""
JSON document storage.

Each store is one pretty-printed JSON array on disk. Writes replace the whole
file atomically (temp file, fsync, rename) while holding the store lock, so a
read never observes a half-written or mutated-but-unsaved collection.
"""
import json
import logging
import os
import tempfile
import threading
from copy import deepcopy
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar

from detecporc.errors import StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")

BOM = "\ufeff"

DEFAULT_POINTS: List[Dict[str, Any]] = [
    {
        "id": 1,
        "name": "Boucherie Porc d'Or",
        "lat": 6.4969,
        "lng": 2.6036,
        "address": "Quartier Zogbo, Porto-Novo",
        "phone": "+229 90 00 11 22",
        "hours": "Lun-Sam 07:00-19:00",
        "comment": "Boucherie traditionnelle, porc frais chaque matin.",
    },
    {
        "id": 2,
        "name": "Porc & Co - Marche Central",
        "lat": 6.4979,
        "lng": 2.6065,
        "address": "Marche Central, Stand B12",
        "phone": "+229 94 20 33 10",
        "hours": "Lun-Sam 06:30-18:30",
        "comment": "Stand B12, marinades maison.",
    },
    {
        "id": 3,
        "name": "Chez Mama Porc",
        "lat": 6.4935,
        "lng": 2.6001,
        "address": "Rue des Artisans",
        "phone": "+229 62 01 88 77",
        "hours": "Lun-Dim 08:00-20:00",
        "comment": "Vente a emporter, portions pretes.",
    },
    {
        "id": 4,
        "name": "Le Charcutier Porto",
        "lat": 6.502,
        "lng": 2.61,
        "address": "Avenue des Marins",
        "phone": "+229 67 55 10 40",
        "hours": "Mar-Dim 08:00-19:30",
        "comment": "Charcuterie seche et saucisses.",
    },
    {
        "id": 5,
        "name": "Marche Akpakpa - Porc",
        "lat": 6.49,
        "lng": 2.598,
        "address": "Akpakpa, Zone commerciale",
        "phone": "+229 95 15 44 00",
        "hours": "Lun-Sam 07:00-18:00",
        "comment": "Petit prix, service rapide.",
    },
    {
        "id": 6,
        "name": "Boucherie Moderne",
        "lat": 6.505,
        "lng": 2.595,
        "address": "Boulevard des Nations",
        "phone": "+229 98 31 20 05",
        "hours": "Lun-Sam 08:00-19:00",
        "comment": "Hygiene controlee.",
    },
    {
        "id": 7,
        "name": "Porc Express",
        "lat": 6.51,
        "lng": 2.607,
        "address": "Rue du Port",
        "phone": "+229 96 04 12 55",
        "hours": "Lun-Dim 07:30-20:30",
        "comment": "Livraison locale possible.",
    },
    {
        "id": 8,
        "name": "Maison du Porc",
        "lat": 6.4878,
        "lng": 2.6122,
        "address": "Quartier Gbekon",
        "phone": "+229 91 73 54 12",
        "hours": "Mer-Dim 09:00-19:00",
        "comment": "Preparations fumees.",
    },
    {
        "id": 9,
        "name": "Le Coin des Cochons",
        "lat": 6.499,
        "lng": 2.593,
        "address": "Carrefour Atinkou",
        "phone": "+229 60 40 10 22",
        "hours": "Lun-Sam 07:00-18:30",
        "comment": "Rabais le week-end.",
    },
    {
        "id": 10,
        "name": "Stand Porc du Port",
        "lat": 6.5035,
        "lng": 2.5995,
        "address": "Digue du Port",
        "phone": "+229 94 11 82 60",
        "hours": "Lun-Sam 06:00-18:00",
        "comment": "Fraicheur du jour garantie.",
    },
]


def next_id(documents: List[Dict[str, Any]]) -> int:
    """max(existing) + 1, or 1 for an empty collection."""
    return max((doc.get("id") or 0 for doc in documents), default=0) + 1


class JsonDocumentStore:
    """A JSON array persisted to a single file."""

    def __init__(self, path: Path, default: Optional[List[Dict[str, Any]]] = None):
        self.path = Path(path)
        self.default = default or []
        self.lock = threading.RLock()

    def exists(self) -> bool:
        return self.path.exists()

    def ensure(self) -> bool:
        """Write the default collection if the file is missing. Returns True when seeded."""
        with self.lock:
            if self.path.exists():
                return False
            self.write(deepcopy(self.default))
            logger.info("Seeded %s with %d documents", self.path, len(self.default))
            return True

    def read(self) -> List[Dict[str, Any]]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return deepcopy(self.default)
        except OSError as exc:
            logger.error("Could not read %s: %s", self.path, exc)
            raise StorageError(f"read failed: {self.path}") from exc

        try:
            documents = json.loads(raw[1:] if raw.startswith(BOM) else raw)
        except ValueError as exc:
            logger.error("Malformed JSON in %s: %s", self.path, exc)
            raise StorageError(f"malformed document: {self.path}") from exc
        if not isinstance(documents, list):
            raise StorageError(f"expected a JSON array in {self.path}")
        return documents

    def write(self, documents: List[Dict[str, Any]]) -> None:
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=self.path.parent, prefix=f".{self.path.name}.", delete=False
            ) as tmp:
                tmp_name = tmp.name
                json.dump(documents, tmp, indent=2, ensure_ascii=False)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, self.path)
        except OSError as exc:
            logger.error("Could not write %s: %s", self.path, exc)
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"write failed: {self.path}") from exc

    def mutate(self, change: Callable[[List[Dict[str, Any]]], T]) -> T:
        """Run read-modify-write as one critical section.

        `change` edits the list in place and returns the call's result. If it
        raises, nothing is written.
        """
        with self.lock:
            documents = self.read()
            result = change(documents)
            self.write(documents)
            return result
