import sys
from collections import Counter
from pathlib import Path
from typing import Any

from click.testing import CliRunner
import pytest
import yaml


def _ensure_repo_on_path() -> None:
    repo_root = Path(__file__).resolve().parent.parent
    if str(repo_root) not in sys.path:
        sys.path.insert(0, str(repo_root))


_ensure_repo_on_path()

from build_resolver.label.pathtools import has_prefix  # noqa: E402
from build_resolver.remote.discovery import IRemoteDiscovery, RepoRoot  # noqa: E402


class StubDiscovery(IRemoteDiscovery):
    """Answers for a handful of example.com paths; everything else fails."""

    def __init__(self) -> None:
        self.calls: Counter[tuple[str, str]] = Counter()
        self.cleaned = False

    def repo_root(self, import_path: str) -> RepoRoot:
        self.calls[("repo_root", import_path)] += 1
        if has_prefix(import_path, "example.com/repo.git"):
            return RepoRoot("example.com/repo.git", "https://example.com/repo.git", "git")
        if has_prefix(import_path, "example.com/repo"):
            return RepoRoot("example.com/repo", "https://example.com/repo.git", "git")
        if has_prefix(import_path, "example.com"):
            return RepoRoot("example.com", "https://example.com", "git")
        raise RuntimeError(f"could not resolve import path: {import_path!r}")

    def head(self, remote: str, vcs: str) -> str:
        self.calls[("head", remote)] += 1
        if vcs == "git" and remote in ("https://example.com/repo", "https://example.com/repo.git"):
            return "abcdef"
        raise RuntimeError(f"could not resolve remote: {remote!r}")

    def module_path(self, import_path: str) -> str:
        self.calls[("module_path", import_path)] += 1
        if has_prefix(import_path, "example.com/stub/v2"):
            return "example.com/stub/v2"
        if has_prefix(import_path, "example.com/stub"):
            return "example.com/stub"
        raise RuntimeError(f"could not find module path for {import_path}")

    def module_version(self, mod_path: str, query: str) -> tuple[str, str]:
        self.calls[("module_version", f"{mod_path}@{query}")] += 1
        if mod_path in ("example.com/known", "example.com/unknown"):
            return "v1.2.3", "h1:abcdef"
        raise RuntimeError(f"no such module: {mod_path}")

    def cleanup(self) -> None:
        self.cleaned = True


@pytest.fixture
def stub_discovery() -> StubDiscovery:
    return StubDiscovery()


@pytest.fixture(autouse=True)
def no_log_level(monkeypatch) -> None:
    monkeypatch.delenv("LOG_LEVEL", raising=False)


@pytest.fixture
def write_yaml():
    def _write(path: Path, payload: Any) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def build_index():
    from build_resolver.index import RuleIndex
    from build_resolver.languages import default_languages
    from build_resolver.models import BuildFile

    def _build(config, files: dict[str, list], finish: bool = True) -> RuleIndex:
        index = RuleIndex(config, default_languages(config))
        for pkg, rules in files.items():
            index.add_rules_from_file(BuildFile(pkg=pkg, rules=list(rules)))
        if finish:
            index.finish()
        return index

    return _build


@pytest.fixture
def make_resolver(build_index, stub_discovery):
    from build_resolver.remote import RemoteCache
    from build_resolver.resolver import Resolver

    def _make(config, files: dict[str, list] | None = None, known_repos=()) -> Resolver:
        index = build_index(config, files or {})
        cache = RemoteCache(known_repos, discovery=stub_discovery)
        return Resolver.from_languages(config, index, cache)

    return _make
