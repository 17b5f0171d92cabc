from abc import ABCMeta
from typing import Any, cast

from build_resolver.config import ResolverConfig
from build_resolver.interfaces import ILanguage


class LanguageRegistryMeta(ABCMeta):
    _registry: dict[str, type["RegisteredLanguage"]] = {}

    def __new__(
        mcls,
        name: str,
        bases: tuple[type, ...],
        namespace: dict[str, Any],
        **kwargs: Any,
    ):
        cls = super().__new__(mcls, name, bases, namespace, **kwargs)
        lang_name = getattr(cls, "NAME", None)
        is_abstract = bool(getattr(cls, "__abstractmethods__", False))
        if lang_name is not None and not is_abstract:
            mcls._registry[lang_name] = cast(type["RegisteredLanguage"], cls)  # type: ignore[assignment]
        return cls


class RegisteredLanguage(ILanguage, metaclass=LanguageRegistryMeta):
    @classmethod
    def create_default(cls) -> "RegisteredLanguage":
        return cls()


def list_registered_languages() -> list[str]:
    _load_registered_modules()
    return sorted(LanguageRegistryMeta._registry.keys())


def create_registered_language(name: str) -> RegisteredLanguage:
    _load_registered_modules()
    language_class = LanguageRegistryMeta._registry.get(name)
    if language_class is None:
        raise KeyError(f"No language registered for: {name}")
    return language_class.create_default()


def default_languages(config: ResolverConfig) -> list[ILanguage]:
    """Registered languages enabled by config, proto first."""
    names = [name for name in list_registered_languages() if config.is_lang_enabled(name)]
    names.sort(key=lambda name: (name != "proto", name))
    return [create_registered_language(name) for name in names]


def _load_registered_modules() -> None:
    from build_resolver.languages.loader import load_language_modules

    load_language_modules()
