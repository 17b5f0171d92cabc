"""Minimal reader for the ``require`` directives of a go.mod file."""

from dataclasses import dataclass
from pathlib import Path

from build_resolver.errors import ConfigFileError, MissingConfigFileError


@dataclass(frozen=True)
class ModuleRequirement:
    path: str
    version: str
    indirect: bool = False


def _strip_comment(line: str) -> tuple[str, str]:
    code, _, comment = line.partition("//")
    return code.strip(), comment.strip()


def _unquote(token: str) -> str:
    if len(token) >= 2 and token[0] == token[-1] and token[0] in ('"', "`"):
        return token[1:-1]
    return token


def _parse_requirement(fields: list[str], comment: str, path: Path, lineno: int) -> ModuleRequirement:
    if len(fields) != 2:
        raise ConfigFileError(path, f"line {lineno}: malformed require directive")
    return ModuleRequirement(
        path=_unquote(fields[0]),
        version=_unquote(fields[1]),
        indirect=comment == "indirect",
    )


def parse_go_mod(text: str, path: Path) -> list[ModuleRequirement]:
    requirements: list[ModuleRequirement] = []
    in_block = False
    for lineno, raw_line in enumerate(text.splitlines(), start=1):
        code, comment = _strip_comment(raw_line)
        if not code:
            continue
        if in_block:
            if code == ")":
                in_block = False
                continue
            requirements.append(_parse_requirement(code.split(), comment, path, lineno))
            continue

        fields = code.split()
        if fields[0] != "require":
            continue
        if fields[1:] == ["("]:
            in_block = True
            continue
        requirements.append(_parse_requirement(fields[1:], comment, path, lineno))

    if in_block:
        raise ConfigFileError(path, "unterminated require block")
    return requirements


def read_go_mod(path: Path) -> list[ModuleRequirement]:
    if not path.exists():
        raise MissingConfigFileError(path)
    return parse_go_mod(path.read_text(encoding="utf-8"), path)
