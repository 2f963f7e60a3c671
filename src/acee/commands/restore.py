"""Restore command for acee.

Puts back the pre-run content of every file that still has a .bak copy,
e.g. after a run was interrupted mid-mutation.
"""

import shutil
from pathlib import Path

import click

from acee.core.validate import BACKUP_SUFFIX
from acee.core.workspace import EXCLUDED_DIRS


def find_backups(root: Path) -> list[Path]:
    """All backup files under root, skipping .git and node_modules."""
    return sorted(
        p
        for p in root.rglob(f"*{BACKUP_SUFFIX}")
        if p.is_file() and not EXCLUDED_DIRS.intersection(p.relative_to(root).parts)
    )


@click.command()
@click.argument(
    "directory",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=Path("workspace"),
)
@click.option("--clean", is_flag=True, help="Delete the backups after restoring.")
def restore(directory: Path, clean: bool) -> None:
    """Restore files under DIRECTORY from their .bak backups.

    Examples:

        acee restore ./workspace

        acee restore ./my-project --clean
    """
    try:
        backups = find_backups(directory)
        if not backups:
            click.echo("No backups found.")
            return

        for backup in backups:
            target = backup.with_name(backup.name[: -len(BACKUP_SUFFIX)])
            shutil.copyfile(backup, target)
            if clean:
                backup.unlink()
            click.echo(f"Restored {target.relative_to(directory).as_posix()}")

        click.echo(f"Restored {len(backups)} file(s).")
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
