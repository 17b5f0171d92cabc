"""Proto rules: import keys, schema-to-schema and schema-to-generated resolution."""

import csv
import posixpath
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from build_resolver.config import ResolverConfig
from build_resolver.constants import (
    PROTO_LANG,
    PROTO_LIBRARY_KINDS,
    PROTO_SUFFIX,
    VENDOR_DIRNAME,
)
from build_resolver.errors import (
    AmbiguousImportError,
    LabelParseError,
    NonProtoImportError,
    SelfImportError,
)
from build_resolver.index import RuleIndex
from build_resolver.interfaces import IImportResolver
from build_resolver.label import Label, parse_label
from build_resolver.label.pathtools import clean_rel, has_prefix, join_rel, trim_prefix
from build_resolver.languages.framework import RegisteredLanguage
from build_resolver.languages.naming import library_name, proto_rule_name
from build_resolver.models import BuildFile, FindResult, ImportSpec, Rule
from build_resolver.remote import RemoteCache


@dataclass(frozen=True)
class KnownProto:
    filename: str
    proto_label: Label
    go_import_path: str
    go_proto_label: Label


def known_protos_path() -> Path:
    return Path(__file__).resolve().parent / "known_protos.csv"


@lru_cache(maxsize=1)
def load_known_protos() -> tuple[KnownProto, ...]:
    entries: list[KnownProto] = []
    with known_protos_path().open("r", encoding="utf-8", newline="") as handle:
        lines = (line for line in handle if line.strip() and not line.startswith("#"))
        for row in csv.reader(lines):
            filename, proto_label, go_import_path, go_proto_label = row
            entries.append(
                KnownProto(
                    filename=filename,
                    proto_label=parse_label(proto_label),
                    go_import_path=go_import_path,
                    go_proto_label=parse_label(go_proto_label),
                )
            )
    return tuple(entries)


def known_proto_import(filename: str) -> Label | None:
    """proto_library label for a well-known proto file."""
    for entry in load_known_protos():
        if entry.filename == filename:
            return entry.proto_label
    return None


def known_go_proto_import(filename: str) -> Label | None:
    """go_proto_library label for a well-known proto file."""
    for entry in load_known_protos():
        if entry.filename == filename:
            return entry.go_proto_label
    return None


def known_go_import(import_path: str) -> Label | None:
    """go_proto_library label for the Go package of a well-known proto."""
    for entry in load_known_protos():
        if entry.go_import_path == import_path:
            return entry.go_proto_label
    return None


def _strip_prefix_root(pkg: str, strip_import_prefix: str) -> str:
    if strip_import_prefix.startswith("/"):
        return clean_rel(strip_import_prefix[1:])
    return join_rel(pkg, strip_import_prefix)


def proto_sources(rule: Rule, pkg: str) -> list[str]:
    """Import paths of the .proto sources listed in srcs."""
    strip = rule.attr_string("strip_import_prefix")
    import_prefix = rule.attr_string("import_prefix")
    sources: list[str] = []
    for src in rule.attr_strings("srcs"):
        try:
            src_label = parse_label(src)
        except LabelParseError:
            continue
        if not src_label.relative or not src_label.name.endswith(PROTO_SUFFIX):
            continue
        path = join_rel(pkg, src_label.name)
        if strip:
            root = _strip_prefix_root(pkg, strip)
            if has_prefix(path, root):
                path = trim_prefix(path, root)
        if import_prefix:
            path = join_rel(import_prefix, path)
        sources.append(path)
    return sources


class ProtoLanguage(RegisteredLanguage):
    NAME = PROTO_LANG
    KINDS = PROTO_LIBRARY_KINDS

    def imports(
        self, config: ResolverConfig, rule: Rule, build_file: BuildFile
    ) -> list[ImportSpec] | None:
        return [ImportSpec(PROTO_LANG, src) for src in proto_sources(rule, build_file.pkg)]

    def embeds(self, rule: Rule, from_label: Label) -> list[Label]:
        return []

    def create_resolver(
        self, config: ResolverConfig, index: RuleIndex, remote_cache: RemoteCache
    ) -> "ProtoImportResolver":
        return ProtoImportResolver(config, index)


class ProtoImportResolver(IImportResolver):
    def __init__(self, config: ResolverConfig, index: RuleIndex) -> None:
        self.config = config
        self.index = index

    @property
    def lang(self) -> str:
        return PROTO_LANG

    def resolve(self, imp: str, from_label: Label) -> Label:
        if not imp.endswith(PROTO_SUFFIX):
            raise NonProtoImportError(imp, from_label)

        if self.config.use_known_proto_imports:
            known = known_proto_import(imp)
            if known is not None:
                if known == from_label:
                    raise SelfImportError(imp, from_label)
                return known

        match = self._find_proto_rule(imp, from_label)
        if match is not None:
            if match.is_self_import(from_label):
                raise SelfImportError(imp, from_label)
            return match.label

        rel = clean_rel(posixpath.dirname(imp))
        return Label(pkg=rel, name=proto_rule_name(rel, self.config.go_prefix))

    def resolve_generated(self, imp: str, from_label: Label, lang: str) -> Label:
        """Resolve a proto import to the library generated from it for lang."""
        if not imp.endswith(PROTO_SUFFIX):
            raise NonProtoImportError(imp, from_label)

        if self.config.use_known_proto_imports:
            known = known_go_proto_import(imp)
            if known is not None:
                return known

        match = self._find_proto_rule(imp, from_label)
        if match is not None:
            generated = self.index.find_embedding_rule(match.label, lang)
            result = generated or match
            if result.is_self_import(from_label):
                raise SelfImportError(imp, from_label)
            return result.label

        rel = clean_rel(posixpath.dirname(imp))
        if has_prefix(from_label.pkg, VENDOR_DIRNAME):
            rel = join_rel(VENDOR_DIRNAME, rel)
        return Label(pkg=rel, name=library_name(self.config.naming, rel))

    def _find_proto_rule(self, imp: str, from_label: Label) -> FindResult | None:
        matches = self.index.find_rules_by_import(ImportSpec(PROTO_LANG, imp), PROTO_LANG)
        if not matches:
            return None
        if len(matches) > 1:
            raise AmbiguousImportError(imp, from_label, [item.label for item in matches])
        return matches[0]
