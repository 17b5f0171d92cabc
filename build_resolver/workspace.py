from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from jsonschema import Draft202012Validator

from build_resolver.constants import MANIFEST_FILENAME
from build_resolver.errors import (
    InvalidConfigSchemaError,
    InvalidYamlFormatError,
    MissingConfigFileError,
)
from build_resolver.label import Label
from build_resolver.label.pathtools import clean_rel
from build_resolver.models import BuildFile, Rule
from build_resolver.utils import format_schema_error, load_json_schema, read_yaml_safe

_RESERVED_KEYS = ("kind", "name", "imports")


def workspace_schema_path() -> Path:
    return Path(__file__).resolve().parent / "schemas" / "workspace.schema.json"


@dataclass
class WorkspaceManifest:
    build_files: list[BuildFile] = field(default_factory=list)
    imports: dict[Label, list[str]] = field(default_factory=dict)

    def find_rule(self, label: Label) -> Optional[Rule]:
        for build_file in self.build_files:
            if build_file.pkg != label.pkg:
                continue
            for rule in build_file.rules:
                if rule.name == label.name:
                    return rule
        return None


class WorkspaceRepository:
    """Reads build files described by a YAML manifest.

    ``packages`` maps a package path to its rules. Each rule needs ``kind``
    and ``name``; ``imports`` lists the raw import strings found in its
    sources and every other key becomes a rule attribute.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or (Path.cwd() / MANIFEST_FILENAME)
        self._validator = Draft202012Validator(load_json_schema(workspace_schema_path()))

    @property
    def path(self) -> Path:
        return self._path

    def load_payload(self) -> dict[str, Any]:
        if not self.path.exists():
            raise MissingConfigFileError(self.path)
        payload, error = read_yaml_safe(self.path)
        if error is not None:
            raise InvalidYamlFormatError(self.path, error)
        if not isinstance(payload, dict):
            raise InvalidConfigSchemaError(self.path, "must be a YAML mapping")
        error_item = next(iter(self._validator.iter_errors(payload)), None)
        if error_item is not None:
            raise InvalidConfigSchemaError(self.path, format_schema_error(error_item))
        return payload

    def load(self) -> WorkspaceManifest:
        return self.build_manifest(self.load_payload())

    def build_manifest(self, payload: dict[str, Any]) -> WorkspaceManifest:
        manifest = WorkspaceManifest()
        for raw_pkg in sorted(payload.get("packages") or {}):
            pkg = clean_rel(str(raw_pkg).strip("/"))
            build_file = BuildFile(pkg=pkg, path=f"{pkg}/BUILD.bazel" if pkg else "BUILD.bazel")
            for item in payload["packages"][raw_pkg] or []:
                attrs = {key: value for key, value in item.items() if key not in _RESERVED_KEYS}
                rule = Rule(kind=item["kind"], name=item["name"], attrs=attrs)
                build_file.rules.append(rule)
                if item.get("imports"):
                    manifest.imports[Label(pkg=pkg, name=rule.name)] = list(item["imports"])
            manifest.build_files.append(build_file)
        return manifest
