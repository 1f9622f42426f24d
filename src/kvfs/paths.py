"""POSIX-style path helpers and the logical-root resolver.

User-facing paths are relative to a **logical root** (``/data`` for user
files, ``/assets`` for bundled assets) and are turned into **canonical
paths**: absolute, normalized, and without a trailing slash (except the
root ``/`` itself).  Canonical paths are the keys of directory records.

Examples::

    join("/data", "notes/a.txt")     → "/data/notes/a.txt"
    join("/data", "/notes/")         → "/data/notes/"
    canonical("/data", "x/../y/")    → "/data/y"
    parse("/data/notes/a.txt")       → ParsedPath(root="/", dir="/data/notes", base="a.txt")

Resolution never creates anything; it only computes where a record lives.
"""

import posixpath
from dataclasses import dataclass

from kvfs.errors import InvalidOperationError

ROOT = "/"
SEP = "/"


@dataclass(frozen=True)
class ParsedPath:
    """A path split into its root, parent directory, and final component."""

    root: str
    dir: str
    base: str


def normalize(path: str) -> str:
    """Collapse ``.``, ``..`` and repeated separators.

    A trailing separator is preserved, since it marks the path as naming
    a directory.  ``..`` never climbs above the root of an absolute path.
    """
    if not path:
        return "."
    trailing = path.endswith(SEP)
    result = posixpath.normpath(path)
    # normpath keeps a leading "//" per POSIX; we treat it as "/"
    if result.startswith("//"):
        result = SEP + result.lstrip(SEP)
    if trailing and result != ROOT:
        result += SEP
    return result


def join(*segments: str) -> str:
    """Concatenate segments with separators, then normalize.

    Unlike ``os.path.join``, an absolute segment does not discard the
    segments before it: ``join("/data", "/a")`` is ``"/data/a"``.
    """
    parts = [s for s in segments if s]
    if not parts:
        return "."
    return normalize(SEP.join(parts))


def strip_trailing(path: str) -> str:
    """Remove a single trailing separator, except on the root."""
    if path != ROOT and path.endswith(SEP):
        return path[:-1]
    return path


def parse(path: str) -> ParsedPath:
    """Split *path* into root, parent directory, and base name.

    A trailing separator is ignored, so ``parse("/a/b/")`` names ``b``.
    """
    root = ROOT if path.startswith(SEP) else ""
    trimmed = strip_trailing(path)
    if trimmed == ROOT:
        return ParsedPath(root=root, dir=ROOT, base="")
    head, base = posixpath.split(trimmed)
    return ParsedPath(root=root, dir=head or root, base=base)


def canonical(root: str, path: str) -> str:
    """Return the canonical absolute path of *path* under *root*."""
    return strip_trailing(join(root, path))


def is_within(root: str, path: str) -> bool:
    """Return True if canonical *path* is *root* or lies beneath it."""
    if root == ROOT:
        return path.startswith(ROOT)
    return path == root or path.startswith(root + SEP)


def resolve_file_path(root: str, path: str) -> str:
    """Resolve a user path naming a file under a logical root.

    Raises:
        InvalidOperationError: If the path ends in a separator or
            escapes the logical root through ``..``.

    """
    if path.endswith(SEP):
        msg = f"A file path cannot end with a separator: {path}"
        raise InvalidOperationError(msg)
    target = canonical(root, path)
    if target == root or not is_within(root, target):
        msg = f"Path escapes {root}: {path}"
        raise InvalidOperationError(msg)
    return target


def resolve_dir_path(path: str) -> str:
    """Resolve an absolute directory path from the filesystem root."""
    return canonical(ROOT, path)
