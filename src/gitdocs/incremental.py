"""Incremental selection: changed files plus trigger-invalidated dependents.

Two finders share one state machine:

* **cold path** -- the storage holds no checkpoint: every file under
  *cwd* is selected (then glob filtered).  Triggers are not evaluated.
* **warm path** -- the storage holds a commit: only files that differ
  between that commit and the branch tip are candidates, plus, for
  :func:`find_changed_or_triggered_by_glob`, every file matched by the
  destination patterns of triggers whose source patterns matched a
  changed file.  Finding those unchanged dependents costs one full tree
  listing under *cwd* whenever at least one trigger fires; without a
  fired trigger the warm path only diffs the two trees.

Either way the checkpoint is set to the tip (resolved when iteration
starts) once the returned iterator is exhausted.  A consumer that stops
early leaves the checkpoint where it was, so those files come again on
the next run.

Usage::

    from gitdocs import find_changed_or_triggered_by_glob, FileCheckpoint

    for path in find_changed_or_triggered_by_glob(
        repository="site.git",
        cwd="pages",
        pattern="**/*.md",
        storage=FileCheckpoint(".last-build"),
        triggers={"templates/**": "**/*.md"},
        triggers_cwd=".",
    ):
        rebuild(path)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Union

from .exceptions import ConfigurationError
from .glob import PatternSet
from .repo import Repository, opened_repository
from .select import Predicate, _check_common, _iter_filtered, _primary_match
from .tree import normalize_prefix, relative_to

logger = logging.getLogger(__name__)

TriggerTarget = Union[str, Iterable[str], Callable[[list[str]], Iterable[str]]]
Triggers = Mapping[str, TriggerTarget]

__all__ = [
    "find_changed_by_glob", "find_changed_or_triggered_by_glob", "resolve_triggers",
]


def _check_storage(storage) -> None:
    if storage is None:
        raise ConfigurationError("'storage' is required")
    if not callable(getattr(storage, "get", None)) or not callable(getattr(storage, "set", None)):
        raise ConfigurationError("'storage' expects an object with get() and set() methods")


def _check_triggers(triggers) -> None:
    if not isinstance(triggers, Mapping):
        raise ConfigurationError(
            f"'triggers' expects a mapping of glob patterns, got {type(triggers).__name__}"
        )
    for src, dest in triggers.items():
        if not isinstance(src, str):
            raise ConfigurationError(f"Trigger keys must be glob strings, got {src!r}")
        if isinstance(dest, str) or callable(dest):
            continue
        if isinstance(dest, Iterable) and all(isinstance(d, str) for d in dest):
            continue
        raise ConfigurationError(
            f"Trigger {src!r} expects a pattern, a list of patterns or a function"
        )


def resolve_triggers(changed: list[str], triggers: Triggers) -> list[str]:
    """Return the destination patterns fired by *changed* paths.

    Every trigger key is checked against the same *changed* list; keys do
    not short-circuit each other and a key without matches adds nothing.
    A callable target receives the matched source paths.  The result is
    deduplicated, in first-seen order.
    """
    result: dict[str, None] = {}
    for src_pattern, dest in triggers.items():
        src = PatternSet(src_pattern)
        matched = [path for path in changed if src.match(path)]
        if not matched:
            continue
        if callable(dest):
            fired = dest(matched)
            patterns = [fired] if isinstance(fired, str) else list(fired or ())
        elif isinstance(dest, str):
            patterns = [dest]
        else:
            patterns = list(dest)
        logger.debug("Trigger %r fired by %d file(s): %s", src_pattern, len(matched), patterns)
        for pattern in patterns:
            result.setdefault(pattern, None)
    return list(result)


def find_changed_by_glob(
    *,
    storage,
    repository: Repository | str | os.PathLike[str] = ".",
    branch: str = "main",
    cwd: str | os.PathLike[str] = ".",
    pattern: str | Iterable[str] | None = None,
    ignore: str | Iterable[str] | None = None,
    predicate: Predicate | None = None,
) -> Iterator[str]:
    """Files under *cwd* matching *pattern* that changed since the checkpoint.

    With no checkpoint every matching file is selected.

    Raises:
        GitError: (on iteration) if the checkpoint or branch does not resolve.
    """
    _check_common(repository, branch, cwd, predicate)
    _check_storage(storage)
    prefix = normalize_prefix(cwd)
    include = PatternSet(pattern) if pattern is not None else None
    exclude = PatternSet(ignore, name="ignore")
    return _iter_changed(repository, branch, prefix, include, exclude, predicate, storage)


def _iter_changed(repository, branch, prefix, include, exclude, predicate, storage) -> Iterator[str]:
    with opened_repository(repository) as repo:
        tip = repo.resolve_ref(branch)
        since = storage.get()
        if since:
            files = repo.list_changed(since, tip, prefix)
            logger.debug("Warm path: %d path(s) changed under %r since %s", len(files), prefix or ".", since[:7])
        else:
            files = repo.list_tree(tip, prefix)
            logger.debug("Cold path: %d path(s) under %r", len(files), prefix or ".")

    files = [relative_to(p, prefix) for p in files]
    yield from _iter_filtered(files, include, exclude, predicate)

    storage.set(tip)
    logger.debug("Checkpoint advanced to %s", tip[:7])


def find_changed_or_triggered_by_glob(
    *,
    storage,
    triggers: Triggers,
    repository: Repository | str | os.PathLike[str] = ".",
    branch: str = "main",
    cwd: str | os.PathLike[str] = ".",
    pattern: str | Iterable[str] | None = None,
    ignore: str | Iterable[str] | None = None,
    predicate: Predicate | None = None,
    triggers_cwd: str | os.PathLike[str] | None = None,
) -> Iterator[str]:
    """Changed files under *cwd*, plus files invalidated by *triggers*.

    *triggers* maps a source glob to a destination glob, a list of
    destination globs, or a function of the matched source paths that
    returns destination globs.  Source globs are matched against paths
    changed under *triggers_cwd* (default: *cwd*), relative to it;
    destination globs are matched against paths relative to *cwd*.

    On the warm path the selection is every changed path matching
    *pattern* (minus *ignore*) or a fired destination glob, followed by
    every other current file matching a fired destination glob.
    *predicate* applies to all of them; *ignore* only to *pattern*.
    On the cold path triggers are not evaluated.  A fired trigger makes
    the warm path list the whole tree under *cwd*, not just the diff.

    Raises:
        GitError: (on iteration) if the checkpoint or branch does not resolve.
    """
    _check_common(repository, branch, cwd, predicate)
    _check_storage(storage)
    _check_triggers(triggers)
    if triggers_cwd is not None and not isinstance(triggers_cwd, (str, os.PathLike)):
        raise ConfigurationError(
            f"'triggers_cwd' expects a string, got {type(triggers_cwd).__name__}"
        )
    prefix = normalize_prefix(cwd)
    trigger_prefix = prefix if triggers_cwd is None else normalize_prefix(triggers_cwd)
    include = PatternSet(pattern) if pattern is not None else None
    exclude = PatternSet(ignore, name="ignore")
    return _iter_changed_or_triggered(
        repository, branch, prefix, include, exclude, predicate,
        storage, triggers, trigger_prefix,
    )


def _iter_changed_or_triggered(
    repository, branch, prefix, include, exclude, predicate,
    storage, triggers, trigger_prefix,
) -> Iterator[str]:
    with opened_repository(repository) as repo:
        tip = repo.resolve_ref(branch)
        since = storage.get()
        if not since:
            files = [relative_to(p, prefix) for p in repo.list_tree(tip, prefix)]
        else:
            changed = [relative_to(p, prefix) for p in repo.list_changed(since, tip, prefix)]
            if trigger_prefix == prefix:
                trigger_changed = changed
            else:
                trigger_changed = [
                    relative_to(p, trigger_prefix)
                    for p in repo.list_changed(since, tip, trigger_prefix)
                ]
            fired = resolve_triggers(trigger_changed, triggers)
            triggered = PatternSet(fired)
            # unchanged dependents need the full listing
            current = [relative_to(p, prefix) for p in repo.list_tree(tip, prefix)] if triggered else []

    if not since:
        logger.debug("Cold path: %d path(s) under %r, triggers skipped", len(files), prefix or ".")
        yield from _iter_filtered(files, include, exclude, predicate)
        storage.set(tip)
        logger.debug("Checkpoint advanced to %s", tip[:7])
        return

    logger.debug(
        "Warm path: %d path(s) changed under %r since %s, %d triggered pattern(s)",
        len(changed), prefix or ".", since[:7], len(fired),
    )

    seen: set[str] = set()
    for path in changed:
        if path in seen:
            continue
        if not (_primary_match(path, include, exclude) or triggered.match(path)):
            continue
        if predicate is not None and not predicate(path):
            continue
        seen.add(path)
        yield path

    for path in current:
        if path in seen or not triggered.match(path):
            continue
        if predicate is not None and not predicate(path):
            continue
        seen.add(path)
        yield path

    storage.set(tip)
    logger.debug("Checkpoint advanced to %s", tip[:7])
