"""Exceptions for gitdocs."""


class GitError(Exception):
    """Raised when the git object store cannot satisfy a request.

    Covers unresolvable refs or commits, missing paths at a ref and
    failures while writing objects or moving a branch.  Callers should
    rely on the message text only.
    """


class ConfigurationError(TypeError, ValueError):
    """Raised for invalid or missing options, before any I/O happens."""


class NamingError(ValueError):
    """Raised when no namer yields an output path for a document."""
