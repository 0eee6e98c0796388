import logging
from typing import Any, Dict, List, Mapping

from pydantic import ValidationError as PydanticValidationError

from detecporc.database import JsonDocumentStore, next_id
from detecporc.errors import NotFoundError, StorageError, ValidationError
from detecporc.schemas import Point, PointDraft

logger = logging.getLogger(__name__)


def validate_draft(data: Any) -> PointDraft:
    """Same rule for creation, update, and public suggestions."""
    if not isinstance(data, Mapping):
        raise ValidationError("draft must be an object")
    try:
        return PointDraft.model_validate(dict(data))
    except PydanticValidationError as exc:
        raise ValidationError(str(exc)) from exc


def load_points(documents: List[Dict[str, Any]]) -> List[Point]:
    try:
        return [Point.model_validate(doc) for doc in documents]
    except PydanticValidationError as exc:
        raise StorageError(f"corrupt point record: {exc}") from exc


class PointRepository:
    """Canonical point collection. The only writer of points.json."""

    def __init__(self, store: JsonDocumentStore):
        self.store = store

    def list(self) -> List[Point]:
        return load_points(self.store.read())

    def get(self, point_id: int) -> Point:
        for point in self.list():
            if point.id == point_id:
                return point
        raise NotFoundError(f"point {point_id}", message_key="point_not_found")

    def create(self, draft: Any) -> Point:
        valid = validate_draft(draft)

        def append(documents: List[Dict[str, Any]]) -> Point:
            _normalize(documents)
            point = Point(id=next_id(documents), **valid.model_dump())
            documents.append(point.model_dump())
            return point

        point = self.store.mutate(append)
        logger.info("Created point %d (%s)", point.id, point.name)
        return point

    def update(self, point_id: int, patch: Any) -> Point:
        if not isinstance(patch, Mapping):
            raise ValidationError("patch must be an object")

        def merge(documents: List[Dict[str, Any]]) -> Point:
            _normalize(documents)
            idx = _index_of(documents, point_id)
            merged = {**documents[idx], **rename_legacy_keys(patch), "id": point_id}
            draft = validate_draft(merged)
            point = Point(id=point_id, **draft.model_dump())
            documents[idx] = point.model_dump()
            return point

        point = self.store.mutate(merge)
        logger.info("Updated point %d", point_id)
        return point

    def delete(self, point_id: int) -> None:
        def remove(documents: List[Dict[str, Any]]) -> None:
            _normalize(documents)
            del documents[_index_of(documents, point_id)]

        self.store.mutate(remove)
        logger.info("Deleted point %d", point_id)

    def reset(self, points: List[Dict[str, Any]]) -> List[Point]:
        """Replace the whole collection."""
        loaded = load_points(points)
        with self.store.lock:
            self.store.write([point.model_dump() for point in loaded])
        logger.info("Reset %s with %d points", self.store.path, len(loaded))
        return loaded


LEGACY_KEYS = {
    "nom": "name",
    "adresse": "address",
    "telephone": "phone",
    "horaires": "hours",
    "commentaire": "comment",
}


def rename_legacy_keys(patch: Mapping) -> Dict[str, Any]:
    """Rename legacy French keys to their English field names."""
    return {LEGACY_KEYS.get(key, key): value for key, value in patch.items()}


def _normalize(documents: List[Dict[str, Any]]) -> None:
    documents[:] = [point.model_dump() for point in load_points(documents)]


def _index_of(documents: List[Dict[str, Any]], point_id: int) -> int:
    for idx, doc in enumerate(documents):
        if doc.get("id") == point_id:
            return idx
    raise NotFoundError(f"point {point_id}", message_key="point_not_found")
