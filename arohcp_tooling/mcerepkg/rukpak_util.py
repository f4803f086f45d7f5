"""Small helpers for bundle handling: hashing, map merging, tar.gz and safe file access."""

from __future__ import annotations

import errno
import hashlib
import json
import os
import stat
import tarfile
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any, BinaryIO

__all__ = ["deep_hash_object", "merge_maps", "fs_to_tar_gz", "open_regular_file"]

_JSON_ESCAPES = str.maketrans(
    {
        "<": "\\u003c",
        ">": "\\u003e",
        "&": "\\u0026",
        "\u2028": "\\u2028",
        "\u2029": "\\u2029",
    }
)
_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def deep_hash_object(obj: Any) -> str:
    """Return base36(sha224(json(obj))), a stable identifier-friendly hash.

    The object is encoded as compact JSON with sorted keys, HTML-sensitive
    characters escaped and a trailing newline.
    """
    try:
        encoded = json.dumps(
            obj, separators=(",", ":"), sort_keys=True, ensure_ascii=False, allow_nan=False
        )
    except (TypeError, ValueError) as exc:
        raise ValueError(f"couldn't encode object: {exc}") from exc
    data = (encoded.translate(_JSON_ESCAPES) + "\n").encode("utf-8")
    digest = hashlib.sha224(data).digest()
    return _base36(int.from_bytes(digest, "big"))


def merge_maps(*maps: Mapping[str, str] | None) -> dict[str, str]:
    """Merge the given maps into a new dict; later maps win."""
    merged: dict[str, str] = {}
    for mapping in maps:
        if mapping:
            merged.update(mapping)
    return merged


def _walk(directory: Path, prefix: str) -> Iterator[tuple[Path, str]]:
    with os.scandir(directory) as scan:
        entries = sorted(scan, key=lambda entry: entry.name)
    for entry in entries:
        name = entry.name if prefix == "." else f"{prefix}/{entry.name}"
        yield Path(entry.path), name
        if entry.is_dir(follow_symlinks=False):
            yield from _walk(Path(entry.path), name)


def fs_to_tar_gz(fileobj: BinaryIO, root: str | os.PathLike[str]) -> None:
    """Write the tree under ``root`` to ``fileobj`` as a gzipped tar archive.

    Paths are stored relative to ``root`` (which itself is "."), owner and
    group information is cleared, and symbolic links are skipped.
    """
    root_path = Path(root)
    try:
        with tarfile.open(fileobj=fileobj, mode="w:gz") as archive:
            entries = [(root_path, ".")]
            entries_iter = _walk(root_path, ".") if root_path.is_dir() else iter(())
            for path, name in [*entries, *entries_iter]:
                if path.is_symlink():
                    continue
                info = archive.gettarinfo(str(path), arcname=name)
                if info is None:
                    raise OSError(f"build tar file info header for {name!r}: unsupported file type")
                info.name = name
                info.uid = 0
                info.gid = 0
                info.uname = ""
                info.gname = ""
                if info.isdir():
                    archive.addfile(info)
                    continue
                with open(path, "rb") as handle:
                    archive.addfile(info, handle)
    except OSError as exc:
        raise OSError(f"generate tar.gz from FS: {exc}") from exc


def _valid_path(name: str) -> bool:
    if name == ".":
        return True
    if not name:
        return False
    return all(part not in ("", ".", "..") for part in name.split("/"))


def open_regular_file(root: str | os.PathLike[str], name: str) -> BinaryIO:
    """Open ``name`` under ``root`` for binary reading, only if it is a regular file.

    Directories, symbolic links and other special files are reported as
    not existing; names that would leave ``root`` are rejected.
    """
    if not _valid_path(name):
        raise ValueError(f"open {name}: invalid argument")
    path = Path(root) / name
    info = os.lstat(path)
    if not stat.S_ISREG(info.st_mode):
        raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), name)
    return open(path, "rb")