import pytest

from fundingsync.db.document_store import ChangeEvent, DocumentNotFound


def test_get_missing_document_is_an_empty_snapshot(store) -> None:
    snapshot = store.get("projects", "nope")
    assert snapshot.exists is False
    assert snapshot.get("currentAmount", 0) == 0


def test_set_merge_and_update(store) -> None:
    store.set("projects", "P", {"targetAmount": 500, "titleEn": "Harbor"})
    store.set("projects", "P", {"currentAmount": 10}, merge=True)
    store.update("projects", "P", {"titleEn": "Harbor View"})
    assert store.get("projects", "P").data == {
        "targetAmount": 500,
        "titleEn": "Harbor View",
        "currentAmount": 10,
    }

    store.set("projects", "P", {"targetAmount": 900})
    assert store.get("projects", "P").data == {"targetAmount": 900}


def test_update_of_missing_document_fails(store) -> None:
    with pytest.raises(DocumentNotFound):
        store.update("projects", "ghost", {"currentAmount": 1})
    assert store.get("projects", "ghost").exists is False


def test_snapshots_are_copies(store) -> None:
    store.set("projects", "P", {"tags": ["a"]})
    snapshot = store.get("projects", "P")
    snapshot.data["tags"].append("b")
    assert store.get("projects", "P").data == {"tags": ["a"]}


def test_query_filters_on_field_equality(store) -> None:
    store.set("investments", "i1", {"projectId": "P", "amount": 1})
    store.set("investments", "i2", {"projectId": "Q", "amount": 2})
    store.set("investments", "i3", {"projectId": "P", "amount": 3})
    store.set("investments", "i4", {"amount": 4})
    store.set("projects", "P", {"projectId": "P"})

    matches = store.query("investments", "projectId", "P")
    assert [snapshot.id for snapshot in matches] == ["i1", "i3"]
    assert [snapshot.id for snapshot in store.list_documents("investments")] == ["i1", "i2", "i3", "i4"]


def test_add_generates_an_id(store) -> None:
    doc_id = store.add("users", {"role": "client"})
    assert store.get("users", doc_id).get("role") == "client"


def test_batch_is_all_or_nothing(store) -> None:
    store.set("investments", "i1", {"status": "approved"})
    batch = store.batch()
    batch.update("investments", "i1", {"status": "signed"})
    batch.update("investments", "missing", {"status": "signed"})

    with pytest.raises(DocumentNotFound):
        batch.commit()
    assert store.get("investments", "i1").get("status") == "approved"


def test_empty_batch_commits_nothing(store) -> None:
    assert store.batch().commit() == []


def test_committed_writes_publish_before_and_after(store) -> None:
    events: list[ChangeEvent] = []
    store.subscribe("investments", events.append)

    store.set("investments", "i1", {"status": "pending", "amount": 5})
    store.update("investments", "i1", {"status": "signing"})
    store.delete("investments", "i1")
    store.delete("investments", "i1")
    store.set("projects", "P", {"targetAmount": 1})

    assert len(events) == 3
    assert events[0].is_create and events[0].after == {"status": "pending", "amount": 5}
    assert events[1].before["status"] == "pending" and events[1].after["status"] == "signing"
    assert events[2].is_delete and events[2].after is None


def test_failed_batch_publishes_nothing(store) -> None:
    events: list[ChangeEvent] = []
    store.subscribe("investments", events.append)
    with pytest.raises(DocumentNotFound):
        store.batch().set("investments", "i1", {"status": "pending"}).update("investments", "x", {}).commit()
    assert events == []


def test_failing_handler_is_redelivered_then_dropped(store) -> None:
    attempts: list[str] = []

    def flaky(event: ChangeEvent) -> None:
        attempts.append(event.document_id)
        raise RuntimeError("downstream unavailable")

    store.subscribe("investments", flaky)
    store.set("investments", "i1", {"status": "pending"})

    assert attempts == ["i1", "i1", "i1"]
    assert store.get("investments", "i1").exists


def test_handler_succeeding_on_retry_stops_redelivery(store) -> None:
    attempts: list[int] = []

    def recovers(event: ChangeEvent) -> None:
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("first delivery fails")

    store.subscribe("investments", recovers)
    store.set("investments", "i1", {"status": "pending"})
    assert len(attempts) == 2


def test_unsubscribe_stops_delivery(store) -> None:
    events: list[ChangeEvent] = []
    unsubscribe = store.subscribe("investments", events.append)
    unsubscribe()
    store.set("investments", "i1", {"status": "pending"})
    assert events == []
