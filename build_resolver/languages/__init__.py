from build_resolver.languages.framework import (
    RegisteredLanguage,
    create_registered_language,
    default_languages,
    list_registered_languages,
)
from build_resolver.languages.go import GoImportResolver, GoLanguage
from build_resolver.languages.proto import ProtoImportResolver, ProtoLanguage

__all__ = [
    "GoImportResolver",
    "GoLanguage",
    "ProtoImportResolver",
    "ProtoLanguage",
    "RegisteredLanguage",
    "create_registered_language",
    "default_languages",
    "list_registered_languages",
]
