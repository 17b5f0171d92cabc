"""Go rules: import keys, embeds and the Go import decision procedure."""

import logging
import posixpath

from build_resolver.config import ResolverConfig
from build_resolver.constants import (
    GAZELLE_REPO_NAME,
    GO_LANG,
    GO_LIBRARY_KINDS,
    GO_NON_LIBRARY_KINDS,
    GO_PROTO_LIBRARY_KINDS,
    PROTO_LANG,
    RULES_GO_REPO_NAME,
    VENDOR_DIRNAME,
)
from build_resolver.errors import (
    AmbiguousImportError,
    ExternalDiscoveryError,
    ExternalImportError,
    ImportNotFoundError,
    ImportPathTooShortError,
    LabelParseError,
    OutsideRepositoryError,
    SelfImportError,
    StandardImportError,
)
from build_resolver.index import RuleIndex
from build_resolver.interfaces import IImportResolver
from build_resolver.label import Label, parse_label
from build_resolver.label.pathtools import (
    clean_rel,
    has_prefix,
    is_local_import,
    join_rel,
    trim_prefix,
)
from build_resolver.languages.framework import RegisteredLanguage
from build_resolver.languages.go_std import is_standard
from build_resolver.languages.naming import library_name
from build_resolver.languages.proto import known_go_import
from build_resolver.models import BuildFile, DependencyMode, FindResult, ImportSpec, Rule
from build_resolver.remote import RemoteCache

logger = logging.getLogger(__name__)

# Repositories whose import paths always resolve under a fixed name.
PINNED_REPOS: tuple[tuple[str, str], ...] = (
    ("github.com/bazelbuild/rules_go", RULES_GO_REPO_NAME),
    ("github.com/bazelbuild/bazel-gazelle", GAZELLE_REPO_NAME),
)


def is_go_proto_library(kind: str) -> bool:
    return kind in GO_PROTO_LIBRARY_KINDS


class GoLanguage(RegisteredLanguage):
    NAME = GO_LANG
    KINDS = GO_LIBRARY_KINDS + GO_PROTO_LIBRARY_KINDS + GO_NON_LIBRARY_KINDS

    def import_lang(self, rule: Rule) -> str:
        return PROTO_LANG if is_go_proto_library(rule.kind) else GO_LANG

    def imports(
        self, config: ResolverConfig, rule: Rule, build_file: BuildFile
    ) -> list[ImportSpec] | None:
        # Tests and binaries can't be imported.
        if rule.kind in GO_NON_LIBRARY_KINDS:
            return None
        importpath = rule.attr_string("importpath")
        if not importpath:
            return []
        return [ImportSpec(GO_LANG, importpath)]

    def embeds(self, rule: Rule, from_label: Label) -> list[Label]:
        values = rule.attr_strings("embed")
        if is_go_proto_library(rule.kind) and rule.attr_string("proto"):
            values.append(rule.attr_string("proto"))
        labels: list[Label] = []
        for value in values:
            try:
                embed = parse_label(value)
            except LabelParseError:
                logger.debug("ignoring unparseable embed %r in %s", value, from_label)
                continue
            labels.append(embed.abs(from_label.repo, from_label.pkg))
        return labels

    def create_resolver(
        self, config: ResolverConfig, index: RuleIndex, remote_cache: RemoteCache
    ) -> "GoImportResolver":
        return GoImportResolver(config, index, remote_cache)


class GoImportResolver(IImportResolver):
    def __init__(
        self, config: ResolverConfig, index: RuleIndex, remote_cache: RemoteCache
    ) -> None:
        self.config = config
        self.index = index
        self.remote_cache = remote_cache

    @property
    def lang(self) -> str:
        return GO_LANG

    def resolve(self, imp: str, from_label: Label) -> Label:
        relative = is_local_import(imp)
        if relative:
            cleaned = posixpath.normpath(posixpath.join(from_label.pkg, imp))
            if cleaned == ".." or cleaned.startswith("../"):
                raise OutsideRepositoryError(imp, from_label)
            imp = join_rel(self.config.go_prefix, clean_rel(cleaned))

        if is_standard(imp):
            raise StandardImportError(imp, from_label)

        if self.config.use_known_proto_imports:
            known = known_go_import(imp)
            if known is not None:
                return known

        match = self._find_with_index(imp, from_label)
        if match is not None:
            if match.is_self_import(from_label):
                raise SelfImportError(imp, from_label)
            return match.label

        for path, repo_name in PINNED_REPOS:
            if has_prefix(imp, path) and not has_prefix(self.config.go_prefix, path):
                return self._label(repo_name, trim_prefix(imp, path), imp)

        prefix = self.config.go_prefix
        if relative or (prefix and has_prefix(imp, prefix) and not self._is_nested_external(imp)):
            pkg = join_rel(self.config.go_prefix_rel, trim_prefix(imp, prefix))
            return self._label("", pkg, imp)

        if self.config.dep_mode == DependencyMode.VENDORED:
            return self._label("", join_rel(VENDOR_DIRNAME, imp), imp)
        return self._resolve_external(imp, from_label)

    def _label(self, repo: str, pkg: str, imp: str) -> Label:
        return Label(repo=repo, pkg=pkg, name=library_name(self.config.naming, imp))

    def _find_with_index(self, imp: str, from_label: Label) -> FindResult | None:
        """Pick the most specific visible provider of imp.

        A vendored rule is visible only below its vendor root. Vendored rules
        shadow non-vendored ones, and deeper vendor roots shadow shallower
        ones. Ties at the best rank are ambiguous.
        """
        matches = self.index.find_rules_by_import(ImportSpec(GO_LANG, imp), GO_LANG)
        visible = [
            item
            for item in matches
            if not item.vendored or has_prefix(from_label.pkg, item.vendor_root)
        ]
        if not visible:
            return None

        def rank(item: FindResult) -> tuple[bool, int]:
            return item.vendored, len(item.vendor_root)

        best_rank = max(rank(item) for item in visible)
        best = [item for item in visible if rank(item) == best_rank]
        if len(best) > 1:
            raise AmbiguousImportError(imp, from_label, [item.label for item in best])
        return best[0]

    def _is_nested_external(self, imp: str) -> bool:
        # A known repository may live below the local prefix.
        root, _ = self.remote_cache.known_root(imp)
        prefix = self.config.go_prefix
        return bool(root) and root != prefix and has_prefix(root, prefix)

    def _resolve_external(self, imp: str, from_label: Label) -> Label:
        try:
            if self.config.dep_mode == DependencyMode.STATIC:
                root, repo = self.remote_cache.root_static(imp)
                if not root:
                    raise ImportNotFoundError(imp, from_label, "no known repository")
            elif self.config.module_mode:
                root, repo = self.remote_cache.mod(imp)
            else:
                root, repo = self.remote_cache.root(imp)
        except (ExternalDiscoveryError, ImportPathTooShortError) as exc:
            raise ExternalImportError(imp, from_label, exc) from exc

        pkg = trim_prefix(imp, root) if has_prefix(imp, root) else ""
        return self._label(repo, pkg, imp)
