import json
import logging
import os
import re
import shutil
import subprocess
import tempfile
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from html.parser import HTMLParser
from pathlib import Path
from urllib.request import Request, urlopen

from build_resolver.constants import (
    HTTP_TIMEOUT_SECONDS,
    REMOTE_CACHE_MODULE,
    REMOTE_CACHE_TMP_PREFIX,
)
from build_resolver.errors import DiscoveryCommandError
from build_resolver.label.pathtools import has_prefix

logger = logging.getLogger(__name__)

_GITHUB_RE = re.compile(
    r"(?P<root>github\.com/[A-Za-z0-9_.\-]+/[A-Za-z0-9_.\-]+)(/[A-Za-z0-9_.\-]+)*"
)
_VCS_SUFFIX_RE = re.compile(
    r"(?P<root>(?P<repo>([a-z0-9.\-]+\.)+[a-z0-9.\-]+(:[0-9]+)?(/~?[A-Za-z0-9_.\-]+)+?)"
    r"\.(?P<vcs>bzr|fossil|git|hg|svn))(/~?[A-Za-z0-9_.\-]+)*"
)


@dataclass(frozen=True)
class RepoRoot:
    root: str
    repo: str
    vcs: str


class IRemoteDiscovery(ABC):
    @abstractmethod
    def repo_root(self, import_path: str) -> RepoRoot:
        raise NotImplementedError

    @abstractmethod
    def head(self, remote: str, vcs: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def module_path(self, import_path: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def module_version(self, mod_path: str, query: str) -> tuple[str, str]:
        raise NotImplementedError

    def cleanup(self) -> None:
        return None


class _GoImportMetaParser(HTMLParser):
    def __init__(self) -> None:
        super().__init__()
        self.imports: list[tuple[str, str, str]] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag != "meta":
            return
        values = {key: value or "" for key, value in attrs}
        if values.get("name") != "go-import":
            return
        fields = values.get("content", "").split()
        if len(fields) == 3:
            self.imports.append((fields[0], fields[1], fields[2]))


def parse_go_import_meta(html: str, import_path: str) -> RepoRoot | None:
    """Pick the ``go-import`` meta tag whose prefix covers import_path."""
    parser = _GoImportMetaParser()
    parser.feed(html)
    matches = [item for item in parser.imports if has_prefix(import_path, item[0])]
    if not matches:
        return None
    # "mod" entries describe a module proxy, not a repository.
    vcs_matches = [item for item in matches if item[1] != "mod"] or matches
    prefix, vcs, repo = max(vcs_matches, key=lambda item: len(item[0]))
    return RepoRoot(root=prefix, repo=repo, vcs=vcs)


def find_go_tool() -> str:
    goroot = os.environ.get("GOROOT")
    if goroot:
        candidate = Path(goroot) / "bin" / "go"
        if candidate.exists():
            return str(candidate)
    return "go"


class VcsDiscovery(IRemoteDiscovery):
    """Discovery backed by ``go-import`` meta tags, ``git`` and ``go``."""

    def __init__(self, timeout: int = HTTP_TIMEOUT_SECONDS) -> None:
        self.timeout = timeout
        self._tmp_lock = threading.Lock()
        self._tmp_dir: Path | None = None

    def repo_root(self, import_path: str) -> RepoRoot:
        match = _GITHUB_RE.fullmatch(import_path)
        if match:
            root = match.group("root")
            return RepoRoot(root=root, repo=f"https://{root}", vcs="git")

        match = _VCS_SUFFIX_RE.fullmatch(import_path)
        if match:
            return RepoRoot(
                root=match.group("root"),
                repo=f"https://{match.group('root')}",
                vcs=match.group("vcs"),
            )

        url = f"https://{import_path}?go-get=1"
        logger.debug("fetching go-import metadata from %s", url)
        request = Request(url, headers={"User-Agent": "build-resolver"})
        with urlopen(request, timeout=self.timeout) as response:
            payload = response.read().decode("utf-8", errors="replace")
        found = parse_go_import_meta(payload, import_path)
        if found is None:
            raise DiscoveryCommandError(f"no go-import meta tag found for {import_path!r}")
        return found

    def head(self, remote: str, vcs: str) -> str:
        if vcs == "local":
            return ""
        if vcs != "git":
            raise DiscoveryCommandError(f"unknown version control system: {vcs}")
        # Older git versions reject "--", so refuse option-like remotes instead.
        if remote.startswith("-"):
            raise DiscoveryCommandError(f"remote must not start with '-': {remote!r}")

        logger.debug("running git ls-remote %s HEAD", remote)
        output = self._run(["git", "ls-remote", remote, "HEAD"], f"git ls-remote for {remote}")
        commit, sep, _ = output.partition("\t")
        if not sep:
            raise DiscoveryCommandError(f"could not parse output for git ls-remote for {remote!r}")
        return commit

    def module_path(self, import_path: str) -> str:
        logger.debug("running go list for %s", import_path)
        output = self._run(
            [find_go_tool(), "list", "-find", "-f", "{{.Module.Path}}", "--", import_path],
            f"finding module path for import {import_path}",
            cwd=self._ensure_tmp_dir(),
        )
        return output.strip()

    def module_version(self, mod_path: str, query: str) -> tuple[str, str]:
        logger.debug("running go mod download for %s@%s", mod_path, query)
        output = self._run(
            [find_go_tool(), "mod", "download", "-json", "--", f"{mod_path}@{query}"],
            f"finding module version and sum for {mod_path}@{query}",
            cwd=self._ensure_tmp_dir(),
        )
        try:
            payload = json.loads(output)
        except json.JSONDecodeError as exc:
            raise DiscoveryCommandError(
                f"could not parse go mod download output for {mod_path}@{query}: {exc}"
            ) from exc
        return payload.get("Version", ""), payload.get("Sum", "")

    def cleanup(self) -> None:
        with self._tmp_lock:
            if self._tmp_dir is not None:
                shutil.rmtree(self._tmp_dir, ignore_errors=True)
                self._tmp_dir = None

    def _ensure_tmp_dir(self) -> Path:
        with self._tmp_lock:
            if self._tmp_dir is None:
                tmp_dir = Path(tempfile.mkdtemp(prefix=REMOTE_CACHE_TMP_PREFIX))
                (tmp_dir / "go.mod").write_text(
                    f"module {REMOTE_CACHE_MODULE}\n", encoding="utf-8"
                )
                self._tmp_dir = tmp_dir
            return self._tmp_dir

    def _run(self, args: list[str], context: str, cwd: Path | None = None) -> str:
        env = dict(os.environ)
        env["GO111MODULE"] = "on"
        try:
            completed = subprocess.run(
                args,
                cwd=cwd,
                env=env,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise DiscoveryCommandError(f"{context}: {exc}") from exc
        if completed.returncode != 0:
            raise DiscoveryCommandError(
                f"{context}: exit status {completed.returncode}: {completed.stderr.strip()}"
            )
        return completed.stdout
