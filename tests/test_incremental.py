"""Tests for incremental selection and triggers."""

import pytest

from gitdocs import (
    ConfigurationError,
    GitError,
    MemoryCheckpoint,
    find_changed_by_glob,
    find_changed_or_triggered_by_glob,
    resolve_triggers,
)

TRIGGERS = {"*1.txt": "folder/*"}


def changed(repo, storage, **kwargs):
    return list(find_changed_by_glob(repository=repo, storage=storage, **kwargs))


def triggered(repo, storage, triggers=TRIGGERS, **kwargs):
    kwargs.setdefault("pattern", "*.txt")
    kwargs.setdefault("ignore", "skip.txt")
    return list(find_changed_or_triggered_by_glob(
        repository=repo, storage=storage, triggers=triggers, **kwargs,
    ))


class TestFindChanged:
    def test_cold_selects_everything(self, docs_repo):
        storage = MemoryCheckpoint()
        assert changed(docs_repo, storage, pattern="*.txt", ignore="skip.txt") == [
            "file1.txt", "file2.txt",
        ]
        assert storage.get() == docs_repo.resolve_ref("main")

    def test_warm_without_changes(self, docs_repo):
        storage = MemoryCheckpoint()
        changed(docs_repo, storage)
        tip = storage.get()
        assert changed(docs_repo, storage) == []
        assert storage.get() == tip

    def test_warm_with_change(self, docs_repo, commit):
        storage = MemoryCheckpoint()
        changed(docs_repo, storage)
        new = commit(docs_repo, {"file2.txt": b"TWO", "other.md": b"x"})
        assert changed(docs_repo, storage, pattern="*.txt") == ["file2.txt"]
        assert storage.get() == new

    def test_warm_reports_deleted(self, docs_repo, commit):
        storage = MemoryCheckpoint()
        changed(docs_repo, storage)
        commit(docs_repo, remove=["file1.txt"])
        assert changed(docs_repo, storage) == ["file1.txt"]
        assert storage.get() == docs_repo.resolve_ref("main")

    def test_same_checkpoint_same_result(self, docs_repo, commit):
        start = docs_repo.resolve_ref("main")
        commit(docs_repo, {"file1.txt": b"ONE"})
        first = changed(docs_repo, MemoryCheckpoint(start))
        assert changed(docs_repo, MemoryCheckpoint(start)) == first == ["file1.txt"]

    def test_checkpoint_held_until_drained(self, docs_repo):
        storage = MemoryCheckpoint()
        paths = find_changed_by_glob(repository=docs_repo, storage=storage)
        assert next(paths) == "file1.txt"
        assert storage.get() is None
        list(paths)
        assert storage.get() == docs_repo.resolve_ref("main")

    def test_tip_resolved_at_start(self, docs_repo, commit):
        storage = MemoryCheckpoint()
        paths = find_changed_by_glob(repository=docs_repo, storage=storage)
        next(paths)
        tip = docs_repo.resolve_ref("main")
        commit(docs_repo, {"late.txt": b"late"})
        list(paths)
        assert storage.get() == tip
        assert changed(docs_repo, storage) == ["late.txt"]

    def test_path_closed_before_first_path(self, docs_repo, commit, closed_repos):
        storage = MemoryCheckpoint(docs_repo.resolve_ref("main"))
        commit(docs_repo, {"file1.txt": b"ONE", "file2.txt": b"TWO"})
        paths = find_changed_by_glob(repository=docs_repo.path, storage=storage)
        assert next(paths) == "file1.txt"
        assert len(closed_repos) == 1
        assert list(paths) == ["file2.txt"]
        assert storage.get() == docs_repo.resolve_ref("main")

    def test_cwd(self, docs_repo, commit):
        storage = MemoryCheckpoint()
        changed(docs_repo, storage, cwd="folder")
        commit(docs_repo, {"folder/file3.txt": b"THREE", "file1.txt": b"ONE"})
        assert changed(docs_repo, storage, cwd="folder") == ["file3.txt"]

    def test_unresolvable_checkpoint(self, docs_repo):
        paths = find_changed_by_glob(repository=docs_repo, storage=MemoryCheckpoint("f" * 40))
        with pytest.raises(GitError):
            list(paths)

    def test_storage_required(self, docs_repo):
        with pytest.raises(ConfigurationError):
            find_changed_by_glob(repository=docs_repo, storage=None)
        with pytest.raises(ConfigurationError):
            find_changed_by_glob(repository=docs_repo, storage=object())


class TestFindChangedOrTriggered:
    def test_cold_ignores_triggers(self, docs_repo):
        storage = MemoryCheckpoint()
        assert triggered(docs_repo, storage) == ["file1.txt", "file2.txt"]
        assert storage.get() == docs_repo.resolve_ref("main")

    def test_trigger_fires(self, docs_repo, commit):
        storage = MemoryCheckpoint()
        triggered(docs_repo, storage)
        commit(docs_repo, {"file1.txt": b"ONE"})
        assert triggered(docs_repo, storage) == ["file1.txt", "folder/file3.txt"]

    def test_trigger_quiet(self, docs_repo, commit):
        storage = MemoryCheckpoint()
        triggered(docs_repo, storage)
        commit(docs_repo, {"file2.txt": b"TWO"})
        assert triggered(docs_repo, storage) == ["file2.txt"]

    def test_no_changes(self, docs_repo):
        storage = MemoryCheckpoint()
        triggered(docs_repo, storage)
        assert triggered(docs_repo, storage) == []

    def test_deleted_source_fires_trigger(self, docs_repo, commit):
        storage = MemoryCheckpoint()
        triggered(docs_repo, storage)
        tip = commit(docs_repo, remove=["file1.txt"])
        assert triggered(docs_repo, storage) == ["file1.txt", "folder/file3.txt"]
        assert storage.get() == tip

    def test_star_target_stays_in_one_directory(self, docs_repo, commit):
        commit(docs_repo, {"folder/sub/deep.txt": b"deep"})
        storage = MemoryCheckpoint()
        triggered(docs_repo, storage)
        commit(docs_repo, {"file1.txt": b"ONE"})
        assert triggered(docs_repo, storage) == ["file1.txt", "folder/file3.txt"]
        commit(docs_repo, {"file1.txt": b"one again"})
        deep = triggered(docs_repo, storage, triggers={"*1.txt": "folder/**"})
        assert deep == ["file1.txt", "folder/file3.txt", "folder/sub/deep.txt"]

    def test_path_closed_before_first_path(self, docs_repo, commit, closed_repos):
        storage = MemoryCheckpoint(docs_repo.resolve_ref("main"))
        commit(docs_repo, {"file1.txt": b"ONE"})
        paths = find_changed_or_triggered_by_glob(
            repository=docs_repo.path, storage=storage, triggers=TRIGGERS,
        )
        assert next(paths) == "file1.txt"
        assert len(closed_repos) == 1
        assert list(paths) == ["folder/file3.txt"]

    def test_changed_dependent_listed_once(self, docs_repo, commit):
        storage = MemoryCheckpoint()
        triggered(docs_repo, storage)
        commit(docs_repo, {"file1.txt": b"ONE", "folder/file3.txt": b"THREE"})
        assert triggered(docs_repo, storage) == ["file1.txt", "folder/file3.txt"]

    def test_callable_target(self, docs_repo, commit):
        seen = []

        def target(matched):
            seen.append(matched)
            return "folder/*"

        storage = MemoryCheckpoint()
        triggered(docs_repo, storage)
        commit(docs_repo, {"file1.txt": b"ONE"})
        result = triggered(docs_repo, storage, triggers={"*.txt": target})
        assert result == ["file1.txt", "folder/file3.txt"]
        assert seen == [["file1.txt"]]

    def test_triggers_cwd(self, docs_repo, commit):
        storage = MemoryCheckpoint()
        triggered(docs_repo, storage, cwd="folder", pattern=None, ignore=None)
        commit(docs_repo, {"file1.txt": b"ONE"})
        result = triggered(
            docs_repo, storage, triggers={"file1.txt": "*.txt"},
            cwd="folder", triggers_cwd=".", pattern=None, ignore=None,
        )
        assert result == ["file3.txt"]

    def test_predicate_applies_to_dependents(self, docs_repo, commit):
        storage = MemoryCheckpoint()
        triggered(docs_repo, storage)
        commit(docs_repo, {"file1.txt": b"ONE"})
        result = triggered(docs_repo, storage, predicate=lambda p: "/" not in p)
        assert result == ["file1.txt"]

    def test_bad_triggers(self, docs_repo):
        storage = MemoryCheckpoint()
        with pytest.raises(ConfigurationError):
            triggered(docs_repo, storage, triggers=["*.txt"])
        with pytest.raises(ConfigurationError):
            triggered(docs_repo, storage, triggers={"*.txt": 3})


class TestResolveTriggers:
    def test_all_keys_checked(self):
        fired = resolve_triggers(
            ["a.txt", "b.md"],
            {"*.txt": "txt/*", "*.md": ["md/*", "txt/*"], "*.css": "css/*"},
        )
        assert fired == ["txt/*", "md/*"]

    def test_nothing_changed(self):
        assert resolve_triggers([], {"**": "*"}) == []
