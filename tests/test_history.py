import json

from arena.history import InMemoryHistoryStore, JsonHistoryStore
from arena.schemas import SYSTEM_SENDER, Message, SavedChat


def saved_chat(chat_id, scenario="Rap battle"):
    return SavedChat(
        id=chat_id,
        scenario_name=scenario,
        date=1700000000000,
        messages=[
            Message.create(SYSTEM_SENDER, "Drop your bars."),
            Message.create("A", "Yo."),
            Message.create("B", "Error: quota", is_error=True),
        ],
        agent_a_name="MC Algorithm",
        agent_b_name="Lil Neural",
        cost_total=0.0125,
    )


def test_json_store_persists_chats(tmp_path):
    path = tmp_path / "history.json"
    store = JsonHistoryStore(path)
    store.save(saved_chat("one"))
    store.save(saved_chat("two", scenario="Philosophy"))

    reopened = JsonHistoryStore(path).load_all()
    assert [c.id for c in reopened] == ["one", "two"]
    assert reopened[0].agent_a_name == "MC Algorithm"
    assert reopened[0].cost_total == 0.0125
    assert reopened[0].messages[2].is_error is True
    assert reopened[0].messages[1].is_error is False

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw[0]["scenarioName"] == "Rap battle"
    assert "isError" not in raw[0]["messages"][1]


def test_json_store_delete_and_clear(tmp_path):
    store = JsonHistoryStore(tmp_path / "history.json")
    store.save(saved_chat("one"))
    store.save(saved_chat("two"))

    assert store.delete("one") is True
    assert store.delete("missing") is False
    assert [c.id for c in store.load_all()] == ["two"]

    store.clear()
    assert store.load_all() == []
    assert not store.path.exists()


def test_json_store_tolerates_bad_file(tmp_path):
    path = tmp_path / "history.json"
    path.write_text("{not json", encoding="utf-8")
    assert JsonHistoryStore(path).load_all() == []

    path.write_text('{"id": "not-a-list"}', encoding="utf-8")
    assert JsonHistoryStore(path).load_all() == []


def test_missing_file_reads_empty(tmp_path):
    store = JsonHistoryStore(tmp_path / "nested" / "history.json")
    assert store.load_all() == []
    store.save(saved_chat("one"))
    assert len(store.load_all()) == 1


def test_export_and_storage_size():
    store = InMemoryHistoryStore()
    assert store.storage_size() == "0.00 KB"
    store.save(saved_chat("one"))

    exported = store.export_json()
    assert json.loads(exported)[0]["id"] == "one"
    assert store.storage_size() == f"{len(exported) * 2 / 1024:.2f} KB"


def test_in_memory_delete():
    store = InMemoryHistoryStore()
    store.save(saved_chat("one"))
    assert store.delete("one") is True
    assert store.delete("one") is False
