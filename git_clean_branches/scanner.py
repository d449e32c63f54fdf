"""
Repository discovery for git-clean-local-branches.

Given a Config, produce the repository roots to clean: the current
directory in single-repository mode, or every directory holding a .git
subdirectory below the target folder in multi-repository mode.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path, PureWindowsPath
from typing import Callable, Iterator, Optional, Sequence

from .config import Config
from .errors import EnvironmentSetupError

LOG = logging.getLogger(__name__)

GIT_DIR_NAME = ".git"

WalkErrorHandler = Callable[[OSError], None]

_DRIVE_PATH_RE = re.compile(r"^[A-Za-z]:[\\/]")

# Where POSIX-side tools mount Windows drives: WSL, MSYS/Git Bash, Cygwin.
DRIVE_MOUNT_TEMPLATES = ("/mnt/{drive}", "/{drive}", "/cygdrive/{drive}")


def is_windows_drive_path(raw: str) -> bool:
    return bool(_DRIVE_PATH_RE.match(raw))


def normalize_folder(
    raw: str,
    os_name: str = os.name,
    mount_templates: Sequence[str] = DRIVE_MOUNT_TEMPLATES,
) -> Path:
    """
    Turn a user-supplied folder into a path the host can traverse.

    Windows drive paths such as C:\\work\\repos are left alone on Windows
    and mapped onto the first existing drive mount point elsewhere.
    """

    if not is_windows_drive_path(raw) or os_name == "nt":
        return Path(raw).expanduser()

    windows_path = PureWindowsPath(raw)
    drive = windows_path.drive[0].lower()
    for template in mount_templates:
        root = Path(template.format(drive=drive))
        if root.is_dir():
            normalized = root.joinpath(*windows_path.parts[1:])
            LOG.debug("Normalized %s to %s", raw, normalized)
            return normalized

    tried = ", ".join(template.format(drive=drive) for template in mount_templates)
    raise EnvironmentSetupError(
        f"cannot map Windows path {raw} to a local path: no drive mount found (tried {tried})"
    )


def has_git_dir(path: Path) -> bool:
    return (path / GIT_DIR_NAME).is_dir()


def _immediate_repositories(folder: Path) -> Iterator[Path]:
    try:
        entries = os.scandir(folder)
    except OSError as exc:
        raise EnvironmentSetupError(f"cannot read folder {folder}: {exc.strerror}") from exc

    with entries:
        for entry in entries:
            if not entry.is_dir():
                continue
            candidate = Path(entry.path)
            if has_git_dir(candidate):
                yield candidate


def _recursive_repositories(
    folder: Path,
    skip_nested: bool,
    on_error: Optional[WalkErrorHandler] = None,
) -> Iterator[Path]:
    def _on_error(exc: OSError) -> None:
        if exc.filename == os.fspath(folder):
            raise EnvironmentSetupError(f"cannot read folder {folder}: {exc.strerror}") from exc
        LOG.debug("Cannot read directory %s: %s", exc.filename, exc.strerror)
        if on_error is not None:
            on_error(exc)

    for dirpath, dirnames, _filenames in os.walk(folder, onerror=_on_error):
        if GIT_DIR_NAME not in dirnames:
            continue
        # Never descend into repository metadata itself.
        dirnames.remove(GIT_DIR_NAME)
        current = Path(dirpath)
        if not (current / GIT_DIR_NAME).is_dir():
            continue
        yield current
        if skip_nested:
            dirnames[:] = []


def discover_repositories(
    config: Config,
    cwd: Optional[Path] = None,
    on_error: Optional[WalkErrorHandler] = None,
) -> Iterator[Path]:
    """
    Lazily yield repository roots to hand to the cleaner.

    Each qualifying directory appears exactly once. Non-recursive mode
    follows directory-listing order; recursive mode follows os.walk
    order and, unless skip_nested is set, also yields repositories
    nested inside another repository's working tree.

    An unreadable target folder raises EnvironmentSetupError. In
    recursive mode an unreadable subdirectory is skipped and passed to
    on_error.
    """

    if config.folder is None:
        yield cwd or Path.cwd()
        return

    folder = config.folder
    if not folder.is_dir():
        raise EnvironmentSetupError(f"folder does not exist: {folder}")

    if config.recursive:
        yield from _recursive_repositories(folder, config.skip_nested, on_error)
    else:
        yield from _immediate_repositories(folder)

