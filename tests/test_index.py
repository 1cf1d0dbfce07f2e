"""Unit tests for techdoc.documents.index — IndexStore bootstrap, load/save, transactions."""

import json

import pytest

from techdoc.documents.index import IndexStore
from techdoc.engine.errors import IndexNotInitializedError


class TestInit:
    def test_creates_root_index_and_trash(self, root):
        store = IndexStore(root)
        store.init()
        assert store.initialized
        assert store.root.is_dir()
        assert store.index_path.is_file()
        assert store.trash_root.is_dir()
        assert store.read() == {}

    def test_rebuilds_from_existing_tree(self, root, make_tree):
        make_tree(root, {"a.md": "alpha", "x/y/b.txt": "bravo!", "Makefile": "all:"})
        store = IndexStore(root)
        store.init()
        records = sorted(store.read().values(), key=lambda r: r.full_path)
        assert [(r.folder, r.name, r.type) for r in records] == [
            ("", "Makefile", ""),
            ("", "a", "md"),
            ("x/y", "b", "txt"),
        ]
        assert all(r.deleted_on is None for r in records)
        assert {r.size for r in records} == {4, 5, 6}

    def test_rebuild_skips_only_trash_and_index(self, root, make_tree):
        make_tree(root, {
            "a.md": "a",
            ".gitignore": "*.tmp",
            ".notes/n.md": "n",
            ".deleted/old.md@20240101000000000000": "gone",
            ".index.json.tmp": "{}",
        })
        store = IndexStore(root)
        store.init()
        records = sorted(store.read().values(), key=lambda r: r.full_path)
        assert [(r.folder, r.name, r.type) for r in records] == [
            ("", ".gitignore", ""),
            (".notes", "n", "md"),
            ("", "a", "md"),
        ]

    def test_keeps_existing_index(self, root, make_tree):
        store = IndexStore(root)
        store.init()
        make_tree(root, {"later.md": "not indexed"})
        again = IndexStore(root)
        again.init()
        assert again.read() == {}

    def test_runs_once(self, root, make_tree):
        store = IndexStore(root)
        store.init()
        store.index_path.unlink()
        store.init()
        assert not store.index_path.exists()

    def test_custom_names(self, root):
        store = IndexStore(root, index_file_name=".idx.json", trash_folder_name=".trash")
        store.init()
        assert (store.root / ".idx.json").is_file()
        assert (store.root / ".trash").is_dir()


class TestLoadSave:
    def test_load_missing_index(self, root):
        store = IndexStore(root)
        with pytest.raises(IndexNotInitializedError):
            store.load()

    def test_save_and_load(self, root, make_tree):
        make_tree(root, {"a.md": "alpha"})
        store = IndexStore(root)
        store.init()
        index = store.load()
        store.save(index)
        assert store.load() == index

    def test_file_layout(self, root, make_tree):
        make_tree(root, {"a.md": "alpha"})
        store = IndexStore(root)
        store.init()
        raw = json.loads(store.index_path.read_text(encoding="utf-8"))
        (key, entry), = raw.items()
        assert entry["id"] == key
        assert entry["fullPath"] == str(store.root / "a.md")
        assert entry["deletedOn"] is None
        assert set(entry) == {
            "id", "name", "folder", "type", "createdOn",
            "lastSavedOn", "deletedOn", "size", "fullPath",
        }

    def test_no_temp_file_left(self, store):
        store.save(store.load())
        assert not store.index_path.with_name(store.index_path.name + ".tmp").exists()


class TestTransaction:
    def test_saves_on_success(self, root, make_tree):
        make_tree(root, {"a.md": "alpha"})
        store = IndexStore(root)
        store.init()
        with store.transaction() as index:
            record = next(iter(index.values()))
            record.name = "renamed"
        assert store.read()[record.id].name == "renamed"

    def test_discards_on_error(self, root, make_tree):
        make_tree(root, {"a.md": "alpha"})
        store = IndexStore(root)
        store.init()
        with pytest.raises(RuntimeError):
            with store.transaction() as index:
                record = next(iter(index.values()))
                record.name = "renamed"
                raise RuntimeError("boom")
        assert store.read()[record.id].name == "a"


class TestRebuild:
    def test_rebuild_mints_new_ids(self, root, make_tree):
        make_tree(root, {"a.md": "alpha", "b.md": "bravo"})
        store = IndexStore(root)
        store.init()
        before = set(store.read())
        assert store.rebuild() == 2
        after = set(store.read())
        assert len(after) == 2
        assert before.isdisjoint(after)

    def test_rebuild_picks_up_new_files(self, store, make_tree):
        make_tree(store.root, {"new.md": "n"})
        assert store.rebuild() == 1


class TestHealth:
    def test_healthy_store(self, store, make_tree):
        status = store.health()
        assert status["initialized"] is True
        assert status["index_exists"] is True
        assert status["documents"] == 0
        assert status["deleted"] == 0

    def test_uninitialized_store(self, root):
        status = IndexStore(root).health()
        assert status["initialized"] is False
        assert status["root_exists"] is False
        assert "documents" not in status
