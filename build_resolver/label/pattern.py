"""Target patterns such as ``//foo/...`` and ``@repo//bar:all``.

Only single patterns are supported: no compound expressions
(``foo/... + bar/...``) and no negative patterns (``-//foo/...``).
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass

from build_resolver.errors import LabelParseError, PatternParseError
from build_resolver.label.label import Label, parse_label
from build_resolver.label.pathtools import has_prefix

_ALL_NAME = "all"
_RECURSIVE_SEGMENT = "..."


@dataclass(frozen=True)
class Pattern:
    repo: str = ""
    pkg: str = ""
    recursive: bool = False
    explicit_all: bool = False
    specific_name: str = ""

    @classmethod
    def parse(cls, text: str) -> "Pattern":
        return parse_pattern(text)

    def matches(self, label: Label) -> bool:
        """Lexical match; relative patterns are relative to the repo root."""
        if self.repo != label.repo:
            return False
        if self.pkg == label.pkg:
            return (
                self.explicit_all
                or self.specific_name == label.name
                or self.recursive
            )
        return self.recursive and has_prefix(label.pkg, self.pkg)

    def __str__(self) -> str:
        if self.repo and self.repo != "@":
            repo = f"@{self.repo}"
        else:
            repo = self.repo

        name = ""
        if self.explicit_all:
            name = f":{_ALL_NAME}"
        elif self.specific_name and posixpath.basename(self.pkg) != self.specific_name:
            name = f":{self.specific_name}"

        dot_dot_dot = ""
        if self.recursive:
            dot_dot_dot = _RECURSIVE_SEGMENT if not self.pkg else f"/{_RECURSIVE_SEGMENT}"
        return f"{repo}//{self.pkg}{dot_dot_dot}{name}"


NO_PATTERN = Pattern()


def _normalize_pattern_text(text: str) -> str:
    s = text
    if not s.startswith("//") and not s.startswith("@"):
        s = "//" + s
    if s.endswith(":*"):
        s = s[: -len("*")] + _ALL_NAME
    elif s.endswith(":all-targets"):
        s = s[: -len("all-targets")] + _ALL_NAME
    return s


def parse_pattern(text: str) -> Pattern:
    try:
        label = parse_label(_normalize_pattern_text(text))
    except LabelParseError as exc:
        raise PatternParseError(text, exc.reason) from exc

    pkg = label.pkg
    name = label.name
    recursive = False
    if pkg.endswith(_RECURSIVE_SEGMENT):
        recursive = True
        if name == _RECURSIVE_SEGMENT:
            name = ""
        if pkg == _RECURSIVE_SEGMENT:
            pkg = ""
        else:
            pkg = pkg[: -len("/" + _RECURSIVE_SEGMENT)]

    explicit_all = name == _ALL_NAME
    return Pattern(
        repo=label.repo,
        pkg=pkg,
        recursive=recursive,
        explicit_all=explicit_all,
        specific_name="" if explicit_all else name,
    )
