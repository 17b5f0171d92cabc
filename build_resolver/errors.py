from pathlib import Path
from typing import Any


class ResolverError(Exception):
    """Base user-facing resolution error."""


class LabelParseError(ResolverError, ValueError):
    def __init__(self, text: str, reason: str) -> None:
        self.text = text
        self.reason = reason
        super().__init__(f"label parse error: {reason}: {text!r}")


class PatternParseError(LabelParseError):
    pass


class ImportResolutionError(ResolverError):
    """An import could not be turned into a label for the requesting rule."""

    def __init__(self, imp: str, from_label: Any, message: str) -> None:
        self.imp = imp
        self.from_label = from_label
        self.message = message
        super().__init__(message)


class AmbiguousImportError(ImportResolutionError):
    def __init__(self, imp: str, from_label: Any, candidates: list[Any]) -> None:
        self.candidates = list(candidates)
        rendered = " and ".join(str(item) for item in self.candidates)
        super().__init__(
            imp,
            from_label,
            f"multiple rules ({rendered}) may be imported with {imp!r} from {from_label}",
        )


class SelfImportError(ImportResolutionError):
    def __init__(self, imp: str, from_label: Any) -> None:
        super().__init__(
            imp, from_label, f"{from_label} imports itself with {imp!r}"
        )


class ImportNotFoundError(ImportResolutionError):
    def __init__(self, imp: str, from_label: Any, detail: str = "") -> None:
        message = f"no rule found for import {imp!r}, needed by {from_label}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(imp, from_label, message)


class OutsideRepositoryError(ImportResolutionError):
    def __init__(self, imp: str, from_label: Any) -> None:
        super().__init__(
            imp,
            from_label,
            f"relative import path {imp!r} from {from_label} points outside of repository",
        )


class StandardImportError(ImportResolutionError):
    def __init__(self, imp: str, from_label: Any) -> None:
        super().__init__(
            imp, from_label, f"import path {imp!r} is in the standard library"
        )


class NonProtoImportError(ImportResolutionError):
    def __init__(self, imp: str, from_label: Any) -> None:
        super().__init__(imp, from_label, f"can't import non-proto: {imp!r}")


class UnsupportedLanguageError(ResolverError):
    def __init__(self, lang: str) -> None:
        self.lang = lang
        super().__init__(f"no resolver registered for language {lang!r}")


class ExternalImportError(ImportResolutionError):
    """Discovery failed while resolving an import to an external repository."""

    def __init__(self, imp: str, from_label: Any, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(
            imp, from_label, f"resolving external import {imp!r} for {from_label}: {cause}"
        )


class ExternalDiscoveryError(ResolverError):
    def __init__(self, key: str, cause: BaseException) -> None:
        self.key = key
        self.cause = cause
        super().__init__(f"resolving {key!r}: {cause}")


class DiscoveryCommandError(ResolverError):
    """A VCS or module tool invocation failed."""


class UnsupportedVcsError(ResolverError):
    def __init__(self, remote: str, vcs: str) -> None:
        self.remote = remote
        self.vcs = vcs
        super().__init__(
            f"could not locate recent commit in repo {remote!r} "
            f"with unknown version control scheme {vcs!r}"
        )


class ImportPathTooShortError(ResolverError):
    def __init__(self, import_path: str, prefix: str) -> None:
        self.import_path = import_path
        self.prefix = prefix
        super().__init__(
            f"import path {import_path!r} is shorter than the known prefix {prefix!r}"
        )


class RuleIndexError(ResolverError):
    """Base error for rule index construction."""


class EmbedCycleError(RuleIndexError):
    def __init__(self, cycle: list[Any]) -> None:
        self.cycle = list(cycle)
        chain = " -> ".join(str(item) for item in self.cycle)
        super().__init__(f"embed cycle detected: {chain}")


class DuplicateLabelError(RuleIndexError):
    def __init__(self, label: Any) -> None:
        self.label = label
        super().__init__(f"multiple rules found with label {label}")


class GeneratedLabelConflictError(RuleIndexError):
    def __init__(self, label: Any) -> None:
        self.label = label
        super().__init__(f"multiple rules generated with label {label}")


class IndexSealedError(RuleIndexError):
    def __init__(self) -> None:
        super().__init__("rule index is finished; no more rules may be added")


class IndexNotFinishedError(RuleIndexError):
    def __init__(self) -> None:
        super().__init__("rule index must be finished before lookups")


class OverrideParseError(ResolverError, ValueError):
    def __init__(self, text: str, detail: str) -> None:
        self.text = text
        self.detail = detail
        super().__init__(f"could not parse resolve override {text!r}: {detail}")


class ConfigFileError(ResolverError):
    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{message}: {path}")


class MissingConfigFileError(ConfigFileError):
    def __init__(self, path: Path) -> None:
        super().__init__(path=path, message="Missing required config file")


class InvalidYamlFormatError(ConfigFileError):
    def __init__(self, path: Path, detail: str) -> None:
        self.detail = detail
        super().__init__(path=path, message=f"Invalid YAML format ({detail})")


class InvalidConfigSchemaError(ConfigFileError):
    def __init__(self, path: Path, detail: str) -> None:
        self.detail = detail
        super().__init__(path=path, message=f"Invalid config schema ({detail})")
