"""The changed command: incremental selection against a checkpoint."""

from __future__ import annotations

import click

from ..checkpoint import FileCheckpoint, RefCheckpoint
from ..exceptions import ConfigurationError
from ..incremental import find_changed_by_glob, find_changed_or_triggered_by_glob
from ._helpers import (
    main,
    _repo_option,
    _branch_option,
    _selection_options,
    _require_repo,
    _open_repo,
    _echo_paths,
    _status,
)


def _parse_triggers(values) -> dict[str, list[str]]:
    """Parse repeated ``SRC=DEST`` values; repeated sources collect destinations."""
    triggers: dict[str, list[str]] = {}
    for value in values:
        src, sep, dest = value.partition("=")
        if not sep or not src or not dest:
            raise click.BadParameter(
                f"expected SRC=DEST, got {value!r}", param_hint="'--trigger'"
            )
        triggers.setdefault(src, []).append(dest)
    return triggers


@main.command()
@_repo_option
@_branch_option
@_selection_options
@click.option("--checkpoint-file", "checkpoint_file", type=click.Path(dir_okay=False),
              help="File holding the last processed commit.")
@click.option("--checkpoint-ref", "checkpoint_ref",
              help="Name of a ref under refs/checkpoints/ holding the last processed commit.")
@click.option("--trigger", "-t", "trigger", multiple=True, metavar="SRC=DEST",
              help="When files matching SRC change, also select files matching DEST (repeatable).")
@click.option("--triggers-cwd", default=None,
              help="Directory trigger sources are relative to (default: --cwd).")
@click.pass_context
def changed(ctx, branch, cwd, pattern, ignore, checkpoint_file, checkpoint_ref, trigger, triggers_cwd):
    """List files changed since the checkpoint, then advance it.

    Without a stored checkpoint every matching file is listed.

    \b
    Examples:
        gitdocs changed --cwd pages --checkpoint-file .last
        gitdocs changed --checkpoint-ref site -t 'templates/**=**/*.md'
    """
    if (checkpoint_file is None) == (checkpoint_ref is None):
        raise click.UsageError("Pass exactly one of --checkpoint-file or --checkpoint-ref.")
    repo = _open_repo(_require_repo(ctx))
    triggers = _parse_triggers(trigger)
    try:
        if checkpoint_file is not None:
            storage = FileCheckpoint(checkpoint_file)
        else:
            storage = RefCheckpoint(repo, checkpoint_ref)
        options = dict(
            storage=storage, repository=repo, branch=branch, cwd=cwd,
            pattern=list(pattern) or None, ignore=list(ignore),
        )
        if triggers:
            paths = find_changed_or_triggered_by_glob(
                triggers=triggers, triggers_cwd=triggers_cwd, **options,
            )
        else:
            paths = find_changed_by_glob(**options)
    except (ConfigurationError, ValueError) as exc:
        raise click.ClickException(str(exc))
    count = _echo_paths(paths)
    _status(ctx, f"{count} file(s); checkpoint at {storage.get()}")
