from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from build_resolver.label import Label


class DependencyMode(str, Enum):
    EXTERNAL = "external"
    VENDORED = "vendored"
    STATIC = "static"


class NamingConvention(str, Enum):
    GO_DEFAULT_LIBRARY = "go_default_library"
    IMPORT = "import"


@dataclass(frozen=True)
class ImportSpec:
    lang: str
    imp: str

    def __str__(self) -> str:
        return f"{self.lang}:{self.imp}"


@dataclass
class Rule:
    kind: str
    name: str
    attrs: dict[str, Any] = field(default_factory=dict)

    def attr(self, key: str) -> Any:
        return self.attrs.get(key)

    def attr_string(self, key: str) -> str:
        value = self.attrs.get(key)
        return value if isinstance(value, str) else ""

    def attr_strings(self, key: str) -> list[str]:
        value = self.attrs.get(key)
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, str)]


@dataclass
class BuildFile:
    pkg: str
    rules: list[Rule] = field(default_factory=list)
    path: Optional[str] = None


@dataclass(frozen=True)
class Repo:
    name: str
    go_prefix: str
    commit: str = ""
    tag: str = ""
    remote: str = ""
    vcs: str = ""


@dataclass(frozen=True)
class FindResult:
    label: Label
    embeds: tuple[Label, ...] = ()
    vendored: bool = False
    vendor_root: str = ""

    def is_self_import(self, from_label: Label) -> bool:
        if self.label == from_label:
            return True
        return any(embed == from_label for embed in self.embeds)


@dataclass(frozen=True)
class ResolveOverride:
    imp_lang: str
    imp: str
    dep: Label
    lang: str = ""

    def matches(self, imp: ImportSpec, lang: str) -> bool:
        return (
            imp.lang == self.imp_lang
            and imp.imp == self.imp
            and (not self.lang or self.lang == lang)
        )


@dataclass
class ResolveResult:
    deps: list[Label]
    errors: list[Exception]
    skipped: list[str]

    def is_valid(self) -> bool:
        return not self.errors

    def summary(self) -> dict[str, int]:
        return {
            "deps": len(self.deps),
            "errors": len(self.errors),
            "skipped": len(self.skipped),
        }
