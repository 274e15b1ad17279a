from .exceptions import GitError, ConfigurationError, NamingError
from .repo import Repository, Signature, CommitInfo, open_repository, opened_repository
from .glob import PatternSet, match_any
from .select import list_tree, list_changed, filter_paths, find_all, find_by_glob
from .checkpoint import CheckpointStorage, MemoryCheckpoint, FileCheckpoint, RefCheckpoint
from .incremental import find_changed_by_glob, find_changed_or_triggered_by_glob, resolve_triggers
from .index import StagingIndex
from .naming import Namer, UrlNamer, HeaderPathNamer, CallableNamer
from .writer import GroupKey, CommitGroup, WriteSession, Writer, writer, default_session, discard_all
from .reader import read_documents
from .header import parse_header

__all__ = [
    "GitError", "ConfigurationError", "NamingError",
    "Repository", "Signature", "CommitInfo", "open_repository", "opened_repository",
    "PatternSet", "match_any",
    "list_tree", "list_changed", "filter_paths", "find_all", "find_by_glob",
    "CheckpointStorage", "MemoryCheckpoint", "FileCheckpoint", "RefCheckpoint",
    "find_changed_by_glob", "find_changed_or_triggered_by_glob", "resolve_triggers",
    "StagingIndex",
    "Namer", "UrlNamer", "HeaderPathNamer", "CallableNamer",
    "GroupKey", "CommitGroup", "WriteSession", "Writer", "writer",
    "default_session", "discard_all",
    "read_documents", "parse_header",
]
