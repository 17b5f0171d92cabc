"""Bazel-style build labels: ``@repo//pkg:name``."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from build_resolver.errors import LabelParseError
from build_resolver.label.pathtools import base_name, has_prefix

# ~ and + are both allowed: canonical repo names use ~ (Bazel 7) or + (Bazel 8).
_REPO_RE = re.compile(r"@|[A-Za-z0-9_.-][A-Za-z0-9_.~+-]*")
# Printable 7-bit ASCII except ':' and '\'.
_PKG_RE = re.compile(r"[\x20-\x39\x3B-\x5B\x5D-\x7E]*")
_NAME_RE = _PKG_RE
_NON_WORD_RE = re.compile(r"\W+", re.ASCII)


@dataclass(frozen=True)
class Label:
    repo: str = ""
    pkg: str = ""
    name: str = ""
    relative: bool = False
    canonical: bool = field(default=False, compare=False)

    @classmethod
    def parse(cls, text: str) -> "Label":
        return parse_label(text)

    def __str__(self) -> str:
        if self.relative:
            return f":{self.name}"

        if self.repo and self.repo != "@":
            repo = f"@{self.repo}"
        else:
            repo = self.repo
        if self.canonical and repo.startswith("@"):
            repo = "@" + repo

        if base_name(self.pkg) == self.name:
            return f"{repo}//{self.pkg}"
        return f"{repo}//{self.pkg}:{self.name}"

    def is_empty(self) -> bool:
        return self == NO_LABEL

    def abs(self, repo: str, pkg: str) -> "Label":
        if not self.relative:
            return self
        return Label(repo=repo, pkg=pkg, name=self.name)

    def rel(self, repo: str, pkg: str) -> "Label":
        if self.relative or self.repo != repo:
            return self
        if self.pkg == pkg:
            return Label(name=self.name, relative=True)
        return Label(pkg=self.pkg, name=self.name)

    def contains(self, other: "Label") -> bool:
        """Whether other is in the package of this label or a sub-package."""
        if self.relative:
            raise ValueError(f"label must not be relative: {self}")
        if other.relative:
            raise ValueError(f"other label must not be relative: {other}")
        return self.repo == other.repo and has_prefix(other.pkg, self.pkg)


NO_LABEL = Label()


def parse_label(text: str) -> Label:
    s = text
    relative = True
    canonical = False
    repo = ""

    if s.startswith("@@"):
        s = s[1:]
        canonical = True
    if s.startswith("@"):
        relative = False
        end_repo = s.find("//")
        if end_repo > 1:
            repo = s[1:end_repo]
            s = s[end_repo:]
        elif end_repo == 1:
            # "@//..." keeps repo "@" so it stays distinct from "//...".
            repo = s[:1]
            s = s[1:]
        else:
            repo = s[1:]
            s = "//:" + repo
        if not _REPO_RE.fullmatch(repo):
            raise LabelParseError(text, "repository has invalid characters")

    pkg = ""
    if s.startswith("//"):
        relative = False
        end_pkg = s.find(":")
        if end_pkg < 0:
            pkg = s[2:]
            s = ""
        else:
            pkg = s[2:end_pkg]
            s = s[end_pkg:]
        if not _PKG_RE.fullmatch(pkg):
            raise LabelParseError(text, "package has invalid characters")

    if s == ":":
        raise LabelParseError(text, "empty name")
    name = s[1:] if s.startswith(":") else s
    if not _NAME_RE.fullmatch(name):
        raise LabelParseError(text, "name has invalid characters")

    if not pkg and not name:
        raise LabelParseError(text, "empty package and name")
    if not name:
        name = base_name(pkg)

    return Label(
        repo=repo,
        pkg=pkg,
        name=name,
        relative=relative,
        canonical=canonical,
    )


def import_path_to_repo_name(import_path: str) -> str:
    """Convert an import path into a repository name.

    The host components are reversed and joined with the rest of the path;
    every run of non-word characters then becomes a single underscore, so
    ``github.com/foo/bar`` becomes ``com_github_foo_bar``.
    """
    components = import_path.lower().split("/")
    host_labels = components[0].split(".")
    joined = ".".join(list(reversed(host_labels)) + components[1:])
    return _NON_WORD_RE.sub("_", joined)
