"""Tar extraction shared by the git and GitHub sources."""

from __future__ import annotations

import logging
import tarfile
from pathlib import Path

logger = logging.getLogger(__name__)


def extract_subtree(
    tar: tarfile.TarFile,
    dest: Path,
    subpath: str = "",
    strip_top: bool = False,
) -> int:
    """Extract regular files under *subpath* into *dest*.

    Args:
        tar: An open archive.
        dest: Target directory; member paths are kept relative to it.
        subpath: Only members below this path are extracted.
        strip_top: Drop the first path component (GitHub tarballs wrap
            everything in an ``<owner>-<repo>-<sha>/`` directory).

    Returns:
        Number of files written.
    """
    root = dest.resolve()
    prefix = subpath.strip("/") + "/" if subpath.strip("/") else ""
    written = 0

    for member in tar.getmembers():
        name = member.name
        if strip_top:
            name = name.partition("/")[2]
        if not name or (prefix and not name.startswith(prefix)):
            continue

        target = dest / name
        try:
            target.resolve().relative_to(root)
        except ValueError:
            logger.warning("Skipping archive member outside destination: %s", member.name)
            continue

        if member.isdir():
            target.mkdir(parents=True, exist_ok=True)
            continue
        if not member.isfile():
            continue

        fobj = tar.extractfile(member)
        if fobj is None:
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(fobj.read())
        written += 1

    return written
