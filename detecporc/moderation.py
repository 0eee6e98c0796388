"""
Moderation queue for publicly suggested points.

A suggestion is pending until an administrator approves it (it becomes a
Point with a fresh repository id) or rejects it (it is dropped). Either way the
record leaves pending.json; no history is kept.

Approve touches two files. The queue entry is removed and persisted first, then
the point is created. If the second write fails the suggestion is lost, never
duplicated, and is logged in full so it can be entered again by hand.
"""
import logging
from typing import Any, Dict, List

from pydantic import ValidationError as PydanticValidationError

from detecporc.database import JsonDocumentStore, next_id
from detecporc.errors import DetecporcError, NotFoundError, StorageError
from detecporc.repository import PointRepository, validate_draft
from detecporc.schemas import Point, Suggestion

logger = logging.getLogger(__name__)


def load_suggestions(documents: List[Dict[str, Any]]) -> List[Suggestion]:
    try:
        return [Suggestion.model_validate(doc) for doc in documents]
    except PydanticValidationError as exc:
        raise StorageError(f"corrupt suggestion record: {exc}") from exc


class ModerationQueue:
    def __init__(self, store: JsonDocumentStore, repository: PointRepository):
        self.store = store
        self.repository = repository

    def list(self) -> List[Suggestion]:
        return load_suggestions(self.store.read())

    def submit(self, draft: Any) -> Suggestion:
        valid = validate_draft(draft)

        def enqueue(documents: List[Dict[str, Any]]) -> Suggestion:
            suggestion = Suggestion(id=next_id(documents), **valid.model_dump())
            documents.append(suggestion.model_dump())
            return suggestion

        suggestion = self.store.mutate(enqueue)
        logger.info("Queued suggestion %d (%s)", suggestion.id, suggestion.name)
        return suggestion

    def approve(self, suggestion_id: int) -> Point:
        suggestion = self.store.mutate(lambda documents: self._pop(documents, suggestion_id))
        fields = suggestion.model_dump(exclude={"id"})
        try:
            point = self.repository.create(fields)
        except DetecporcError:
            logger.error("Suggestion %d removed but not published, re-enter it manually: %s",
                         suggestion_id, fields)
            raise
        logger.info("Approved suggestion %d as point %d", suggestion_id, point.id)
        return point

    def reject(self, suggestion_id: int) -> None:
        self.store.mutate(lambda documents: self._pop(documents, suggestion_id))
        logger.info("Rejected suggestion %d", suggestion_id)

    @staticmethod
    def _pop(documents: List[Dict[str, Any]], suggestion_id: int) -> Suggestion:
        for idx, suggestion in enumerate(load_suggestions(documents)):
            if suggestion.id == suggestion_id:
                del documents[idx]
                return suggestion
        raise NotFoundError(f"suggestion {suggestion_id}", message_key="suggestion_not_found")
