"""Naming strategies: derive an output path from a document.

A namer is any object with ``try_name(document) -> str | None``.  Plain
functions are wrapped in :class:`CallableNamer`.  Writers try their
namers in order and use the first non-empty string.
"""

from __future__ import annotations

import posixpath
from collections.abc import Mapping
from typing import Any, Callable, Iterable, Protocol, runtime_checkable
from urllib.parse import urlsplit

from .exceptions import ConfigurationError, NamingError

__all__ = [
    "Namer", "UrlNamer", "HeaderPathNamer", "CallableNamer",
    "as_namers", "resolve_name", "default_namers",
]


@runtime_checkable
class Namer(Protocol):
    def try_name(self, document: Any) -> str | None: ...


class UrlNamer:
    """Name a document after its ``url`` field.

    ``/blog/post/`` and ``/blog/post`` become ``blog/post/index.html``;
    a URL whose last segment has an extension (``/feed.xml``) is used as is.
    """

    def __init__(self, key: str = "url", index: str = "index.html"):
        self.key = key
        self.index = index

    def __repr__(self) -> str:
        return f"UrlNamer({self.key!r})"

    def try_name(self, document: Any) -> str | None:
        if not isinstance(document, Mapping):
            return None
        url = document.get(self.key)
        if not isinstance(url, str) or not url:
            return None
        path = urlsplit(url).path.lstrip("/")
        if not path or path.endswith("/"):
            return path + self.index
        if not posixpath.splitext(posixpath.basename(path))[1]:
            return f"{path}/{self.index}"
        return path


class HeaderPathNamer:
    """Name a document after ``header["path"]`` with a new extension."""

    def __init__(self, extension: str = ".html"):
        self.extension = extension

    def __repr__(self) -> str:
        return f"HeaderPathNamer({self.extension!r})"

    def try_name(self, document: Any) -> str | None:
        if not isinstance(document, Mapping):
            return None
        header = document.get("header")
        if not isinstance(header, Mapping):
            return None
        path = header.get("path")
        if not isinstance(path, str) or not path:
            return None
        root, _ = posixpath.splitext(path)
        return root + self.extension


class CallableNamer:
    """Adapt a function ``document -> str | None`` to the namer protocol."""

    def __init__(self, fn: Callable[[Any], str | None]):
        self.fn = fn

    def __repr__(self) -> str:
        return f"CallableNamer({getattr(self.fn, '__name__', self.fn)!r})"

    def try_name(self, document: Any) -> str | None:
        return self.fn(document)


def default_namers() -> list[Namer]:
    return [UrlNamer(), HeaderPathNamer()]


def as_namers(namer) -> list[Namer]:
    """Normalize a namer, a function, or a list of either into a list of namers."""
    if namer is None:
        return default_namers()
    if isinstance(namer, Namer) or callable(namer):
        items: Iterable = [namer]
    elif isinstance(namer, (list, tuple)):
        items = namer
    else:
        raise ConfigurationError("'namer' expects a namer, a function or a list of them")
    result: list[Namer] = []
    for item in items:
        if isinstance(item, Namer):
            result.append(item)
        elif callable(item):
            result.append(CallableNamer(item))
        else:
            raise ConfigurationError("'namer' expects a namer, a function or a list of them")
    if not result:
        raise ConfigurationError("'namer' must not be empty")
    return result


def resolve_name(namers: Iterable[Namer], document: Any) -> str:
    """Return the first non-empty name, or raise :class:`NamingError`."""
    for namer in namers:
        name = namer.try_name(document)
        if name and isinstance(name, str):
            return name
    raise NamingError("Could not create an output filename from the document's url or header.path")
