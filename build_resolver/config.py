from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator

from build_resolver.constants import CONFIG_FILENAME
from build_resolver.errors import (
    InvalidConfigSchemaError,
    InvalidYamlFormatError,
    LabelParseError,
    MissingConfigFileError,
    OverrideParseError,
)
from build_resolver.label import parse_label
from build_resolver.models import (
    DependencyMode,
    ImportSpec,
    NamingConvention,
    Repo,
    ResolveOverride,
)
from build_resolver.utils import format_schema_error, load_json_schema, read_yaml_safe


def config_schema_path() -> Path:
    return Path(__file__).resolve().parent / "schemas" / "config.schema.json"


@dataclass(frozen=True)
class ResolverConfig:
    repo_root: Path = field(default_factory=Path.cwd)
    go_prefix: str = ""
    go_prefix_rel: str = ""
    dep_mode: DependencyMode = DependencyMode.EXTERNAL
    naming: NamingConvention = NamingConvention.GO_DEFAULT_LIBRARY
    langs: tuple[str, ...] = ()
    known_repos: tuple[Repo, ...] = ()
    overrides: tuple[ResolveOverride, ...] = ()
    use_known_proto_imports: bool = True
    module_mode: bool = False
    go_mod: Path | None = None

    def is_lang_enabled(self, lang: str) -> bool:
        return not self.langs or lang in self.langs

    def find_override(self, imp: ImportSpec, lang: str) -> ResolveOverride | None:
        # Later overrides win.
        for override in reversed(self.overrides):
            if override.matches(imp, lang):
                return override
        return None


def parse_override(text: str, sep: str | None = None) -> ResolveOverride:
    """Parse ``"<imp-lang> [<lang>] <import> <label>"`` into an override.

    Fields are split on whitespace unless ``sep`` is given.
    """
    parts = text.split(sep) if sep else text.split()
    if len(parts) == 3:
        imp_lang, imp, raw_label = parts
        lang = ""
    elif len(parts) == 4:
        imp_lang, lang, imp, raw_label = parts
    else:
        raise OverrideParseError(
            text, "expected <imp-lang> [<lang>] <import> <label>"
        )
    try:
        dep = parse_label(raw_label)
    except LabelParseError as exc:
        raise OverrideParseError(text, str(exc)) from exc
    return ResolveOverride(imp_lang=imp_lang, imp=imp, dep=dep.abs("", ""), lang=lang)


class ConfigRepository:
    def __init__(self, path: Path | None = None, repo_root: Path | None = None) -> None:
        if repo_root is None:
            repo_root = path.resolve().parent if path is not None else Path.cwd()
        self._repo_root = repo_root
        self._path = path or (self._repo_root / CONFIG_FILENAME)
        self._validator = Draft202012Validator(load_json_schema(config_schema_path()))

    @property
    def path(self) -> Path:
        return self._path

    def load_payload(self) -> dict[str, Any]:
        if not self.path.exists():
            raise MissingConfigFileError(self.path)
        payload, error = read_yaml_safe(self.path)
        if error is not None:
            raise InvalidYamlFormatError(self.path, error)
        if payload is None:
            return {}
        if not isinstance(payload, dict):
            raise InvalidConfigSchemaError(self.path, "must be a YAML mapping")
        self.validate(payload)
        return payload

    def validate(self, payload: dict[str, Any]) -> None:
        error = next(iter(self._validator.iter_errors(payload)), None)
        if error is not None:
            raise InvalidConfigSchemaError(self.path, format_schema_error(error))

    def load(self) -> ResolverConfig:
        return self.build_config(self.load_payload())

    def load_or_default(self) -> ResolverConfig:
        if not self.path.exists():
            return ResolverConfig(repo_root=self._repo_root)
        return self.load()

    def build_config(self, payload: dict[str, Any]) -> ResolverConfig:
        known_repos = tuple(
            Repo(
                name=item["name"],
                go_prefix=item["importpath"],
                commit=item.get("commit", ""),
                tag=item.get("tag", ""),
                remote=item.get("remote", ""),
                vcs=item.get("vcs", ""),
            )
            for item in payload.get("known_repos", [])
        )
        overrides: list[ResolveOverride] = []
        for text in payload.get("resolve", []):
            try:
                overrides.append(parse_override(text))
            except OverrideParseError as exc:
                raise InvalidConfigSchemaError(self.path, str(exc)) from exc

        go_mod = payload.get("go_mod")
        return ResolverConfig(
            repo_root=self._repo_root,
            go_prefix=payload.get("go_prefix", ""),
            go_prefix_rel=payload.get("go_prefix_rel", ""),
            dep_mode=DependencyMode(payload.get("dep_mode", DependencyMode.EXTERNAL.value)),
            naming=NamingConvention(
                payload.get("naming", NamingConvention.GO_DEFAULT_LIBRARY.value)
            ),
            langs=tuple(payload.get("langs", [])),
            known_repos=known_repos,
            overrides=tuple(overrides),
            use_known_proto_imports=bool(payload.get("use_known_proto_imports", True)),
            module_mode=bool(payload.get("module_mode", False)),
            go_mod=(self._repo_root / go_mod) if go_mod else None,
        )
