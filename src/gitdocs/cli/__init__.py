"""gitdocs CLI: select, read and commit documents in a git branch."""

from ._helpers import main  # noqa: F401 -- entry point

# Import command modules to register Click commands with the main group.
from . import _basic, _changed  # noqa: F401
