import logging
from typing import Iterable

from build_resolver.config import ResolverConfig
from build_resolver.constants import PROTO_LANG
from build_resolver.errors import (
    ResolverError,
    SelfImportError,
    StandardImportError,
    UnsupportedLanguageError,
)
from build_resolver.index import RuleIndex
from build_resolver.interfaces import IImportResolver, ILanguage
from build_resolver.label import Label
from build_resolver.languages.proto import ProtoImportResolver
from build_resolver.models import ImportSpec, ResolveResult, Rule
from build_resolver.remote import RemoteCache

logger = logging.getLogger(__name__)


class Resolver:
    """Maps ``(language, import, requesting label)`` to a dependency label.

    Overrides are consulted first, then the language's import resolver. Proto
    imports of non-proto rules resolve to the library generated for that
    language.
    """

    def __init__(
        self,
        config: ResolverConfig,
        index: RuleIndex,
        remote_cache: RemoteCache,
        import_resolvers: Iterable[IImportResolver],
    ) -> None:
        self.config = config
        self.index = index
        self.remote_cache = remote_cache
        self._resolvers = {resolver.lang: resolver for resolver in import_resolvers}

    @classmethod
    def from_languages(
        cls,
        config: ResolverConfig,
        index: RuleIndex,
        remote_cache: RemoteCache,
        languages: Iterable[ILanguage] | None = None,
    ) -> "Resolver":
        languages = index.languages if languages is None else languages
        return cls(
            config,
            index,
            remote_cache,
            [language.create_resolver(config, index, remote_cache) for language in languages],
        )

    def resolver_for(self, lang: str) -> IImportResolver:
        resolver = self._resolvers.get(lang)
        if resolver is None:
            raise UnsupportedLanguageError(lang)
        return resolver

    def resolve(self, lang: str, imp: str, from_label: Label) -> Label:
        return self.resolve_spec(ImportSpec(lang, imp), lang, from_label)

    def resolve_spec(self, imp: ImportSpec, lang: str, from_label: Label) -> Label:
        override = self.config.find_override(imp, lang)
        if override is not None:
            return override.dep

        if imp.lang == lang:
            return self.resolver_for(lang).resolve(imp.imp, from_label)

        proto = self.resolver_for(imp.lang)
        if imp.lang == PROTO_LANG and isinstance(proto, ProtoImportResolver):
            return proto.resolve_generated(imp.imp, from_label, lang)
        raise UnsupportedLanguageError(f"{imp.lang} imports in {lang} rules")

    def resolve_imports(
        self,
        rule: Rule,
        from_label: Label,
        imports: Iterable[str | ImportSpec],
        lang: str | None = None,
    ) -> ResolveResult:
        """Resolve every import of one rule, collecting failures per import."""
        language = self.index.language_for_kind(rule.kind)
        if lang is None:
            if language is None:
                raise UnsupportedLanguageError(rule.kind)
            lang = language.name
        import_lang = language.import_lang(rule) if language is not None else lang
        embeds = set(language.embeds(rule, from_label)) if language is not None else set()

        deps: dict[Label, None] = {}
        errors: list[Exception] = []
        skipped: list[str] = []
        for item in imports:
            spec = item if isinstance(item, ImportSpec) else ImportSpec(import_lang, item)
            try:
                label = self.resolve_spec(spec, lang, from_label)
            except (SelfImportError, StandardImportError):
                skipped.append(spec.imp)
                continue
            except ResolverError as exc:
                logger.debug("could not resolve %s for %s: %s", spec, from_label, exc)
                errors.append(exc)
                continue

            if label.is_empty() or label == from_label or label in embeds:
                continue
            deps[label.rel(from_label.repo, from_label.pkg)] = None

        return ResolveResult(
            deps=sorted(deps, key=str),
            errors=errors,
            skipped=skipped,
        )
