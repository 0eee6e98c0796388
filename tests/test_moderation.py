import pytest

from conftest import draft
from detecporc.errors import NotFoundError, StorageError, ValidationError


def test_submit_queues_pending(queue, repository):
    suggestion = queue.submit(draft())
    assert suggestion.id == 1
    assert queue.list() == [suggestion]
    assert repository.list() == []


def test_submit_validates_like_create(queue):
    with pytest.raises(ValidationError):
        queue.submit(draft(lat="north"))
    with pytest.raises(ValidationError):
        queue.submit(["not", "an", "object"])
    assert queue.list() == []


def test_approve_promotes_into_repository(queue, repository):
    repository.create(draft(name="Existant"))
    repository.create(draft(name="Autre"))
    suggestion = queue.submit(draft(name="Nouveau stand", lat=6.51, lng=2.607))

    point = queue.approve(suggestion.id)

    assert queue.list() == []
    assert point in repository.list()
    assert point.id == 3
    assert point.id != suggestion.id
    assert (point.name, point.lat, point.lng) == ("Nouveau stand", 6.51, 2.607)


def test_reject_discards(queue, repository):
    first = queue.submit(draft(name="Un"))
    second = queue.submit(draft(name="Deux"))

    queue.reject(first.id)

    assert queue.list() == [second]
    assert repository.list() == []


@pytest.mark.parametrize("decision", ["approve", "reject"])
def test_decisions_on_unknown_id(queue, decision):
    with pytest.raises(NotFoundError) as excinfo:
        getattr(queue, decision)(99)
    assert excinfo.value.message_key == "suggestion_not_found"


def test_decided_suggestion_cannot_be_decided_again(queue):
    suggestion = queue.submit(draft())
    queue.approve(suggestion.id)
    with pytest.raises(NotFoundError):
        queue.reject(suggestion.id)


def test_interrupted_approve_loses_suggestion_without_duplicate(queue, repository, monkeypatch):
    suggestion = queue.submit(draft())

    def failing_create(fields):
        raise StorageError("disk full")

    monkeypatch.setattr(repository, "create", failing_create)
    with pytest.raises(StorageError):
        queue.approve(suggestion.id)

    assert queue.list() == []
    assert repository.list() == []
