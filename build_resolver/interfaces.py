from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

from build_resolver.label import Label
from build_resolver.models import BuildFile, ImportSpec, Rule

if TYPE_CHECKING:
    from build_resolver.config import ResolverConfig
    from build_resolver.index import RuleIndex
    from build_resolver.remote import RemoteCache


class IImportResolver(ABC):
    """Turns one import string of a language into a dependency label."""

    @property
    @abstractmethod
    def lang(self) -> str:
        raise NotImplementedError

    @abstractmethod
    def resolve(self, imp: str, from_label: Label) -> Label:
        raise NotImplementedError


class ILanguage(ABC):
    NAME: ClassVar[str | None] = None
    KINDS: ClassVar[tuple[str, ...]] = ()

    @property
    def name(self) -> str:
        if self.NAME is None:
            raise NotImplementedError
        return self.NAME

    def kinds(self) -> tuple[str, ...]:
        return self.KINDS

    def import_lang(self, rule: Rule) -> str:
        """Language of the import strings the rule's sources contain."""
        return self.name

    @abstractmethod
    def imports(
        self, config: "ResolverConfig", rule: Rule, build_file: BuildFile
    ) -> list[ImportSpec] | None:
        """Import specs the rule provides; ``None`` when it is not importable."""
        raise NotImplementedError

    @abstractmethod
    def embeds(self, rule: Rule, from_label: Label) -> list[Label]:
        raise NotImplementedError

    @abstractmethod
    def create_resolver(
        self,
        config: "ResolverConfig",
        index: "RuleIndex",
        remote_cache: "RemoteCache",
    ) -> IImportResolver:
        raise NotImplementedError
