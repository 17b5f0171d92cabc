"""Slash-separated path helpers shared by labels, the index and the resolver."""

from __future__ import annotations

import posixpath


def has_prefix(path: str, prefix: str) -> bool:
    """Component-wise prefix test: "foo/bar" is not a prefix of "foo/barbaz"."""
    return prefix == "" or path == prefix or path.startswith(prefix + "/")


def trim_prefix(path: str, prefix: str) -> str:
    if prefix == "":
        return path
    if path == prefix:
        return ""
    if path.startswith(prefix + "/"):
        return path[len(prefix) + 1 :]
    return path


def base_name(path: str) -> str:
    """Last element of a slash path, ignoring trailing slashes.

    An empty path gives "." and a path of only slashes gives "/".
    """
    if not path:
        return "."
    trimmed = path.rstrip("/")
    if not trimmed:
        return "/"
    return trimmed.rsplit("/", 1)[-1]


def rel_base_name(rel: str) -> str:
    base = base_name(rel)
    return "" if base in (".", "/") else base


def join_rel(*parts: str) -> str:
    non_empty = [part for part in parts if part]
    if not non_empty:
        return ""
    cleaned = posixpath.normpath(posixpath.join(*non_empty))
    return "" if cleaned == "." else cleaned


def clean_rel(path: str) -> str:
    cleaned = posixpath.normpath(path) if path else "."
    return "" if cleaned == "." else cleaned


def is_local_import(imp: str) -> bool:
    return (
        imp in (".", "..")
        or imp.startswith("./")
        or imp.startswith("../")
    )


def prefixes(path: str) -> list[str]:
    """Return path and each of its parents, longest first."""
    result: list[str] = []
    current = path
    while current not in ("", ".", "/"):
        result.append(current)
        current = posixpath.dirname(current)
    return result
