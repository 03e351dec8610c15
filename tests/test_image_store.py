"""
Tests for the in-memory image store.
"""

from image2svg.image_store import ImageStore


def test_add_and_get():
    store = ImageStore()
    image_id = store.add("a.png", b"payload", "image/png")

    record = store.get(image_id)

    assert record.id == image_id
    assert record.name == "a.png"
    assert record.payload == b"payload"
    assert record.mime_type == "image/png"
    assert record.created_at > 0


def test_ids_are_unique():
    store = ImageStore()
    assert store.add("a", b"1") != store.add("b", b"2")
    assert len(store) == 2


def test_missing_id_returns_none():
    assert ImageStore().get(99) is None


def test_delete():
    store = ImageStore()
    image_id = store.add("a", b"1")

    assert store.delete(image_id)
    assert store.get(image_id) is None
    assert not store.delete(image_id)


def test_list_recent_newest_first():
    store = ImageStore()
    first = store.add("first", b"1")
    second = store.add("second", b"2")

    assert [r.id for r in store.list_recent()] == [second, first]


def test_add_file(tmp_path):
    path = tmp_path / "photo.png"
    path.write_bytes(b"\x89PNG")
    store = ImageStore()

    record = store.get(store.add_file(path))

    assert record.name == "photo.png"
    assert record.payload == b"\x89PNG"
    assert record.mime_type == "image/png"
