"""Memoized, thread-safe lookups of external repository metadata.

Each table maps a key to a :class:`CacheEntry`. The first caller for a key
inserts a pending entry and runs the loader outside the table lock; other
callers for the same key wait for the entry's event. Entries seeded from
known repositories have no event and never block. Nothing is evicted.
"""

import logging
import re
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable

from build_resolver.errors import (
    ExternalDiscoveryError,
    ImportPathTooShortError,
    UnsupportedVcsError,
)
from build_resolver.label import import_path_to_repo_name
from build_resolver.label.pathtools import has_prefix, join_rel, prefixes, trim_prefix
from build_resolver.models import Repo
from build_resolver.remote.discovery import IRemoteDiscovery, VcsDiscovery
from build_resolver.remote.gomod import read_go_mod

logger = logging.getLogger(__name__)

_GOPKG_IN_RE = re.compile(r"(gopkg\.in/(?:[^/]+/)?[^/]+\.v\d+)(?:/|$)")

# Hosts whose repository root sits a fixed number of components below them.
KNOWN_PREFIXES: tuple[tuple[str, int], ...] = (
    ("golang.org/x", 1),
    ("google.golang.org", 1),
    ("cloud.google.com", 1),
    ("github.com", 2),
)


@dataclass(frozen=True)
class RootValue:
    root: str
    name: str


@dataclass(frozen=True)
class RemoteValue:
    remote: str
    vcs: str


@dataclass(frozen=True)
class HeadValue:
    commit: str
    tag: str = ""


@dataclass(frozen=True)
class ModValue:
    path: str
    name: str
    known: bool = False


@dataclass(frozen=True)
class ModVersionValue:
    version: str
    sum: str


@dataclass
class CacheEntry:
    value: Any = None
    error: BaseException | None = None
    ready: threading.Event | None = None


@dataclass
class RemoteCacheMap:
    name: str
    entries: dict[str, CacheEntry] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def seed(self, key: str, value: Any) -> None:
        with self.lock:
            self.entries[key] = CacheEntry(value=value)

    def seed_default(self, key: str, value: Any) -> None:
        with self.lock:
            self.entries.setdefault(key, CacheEntry(value=value))

    def get_known(self, key: str) -> tuple[bool, Any]:
        """Return ``(found, value)`` for seeded entries only; never waits or raises."""
        with self.lock:
            entry = self.entries.get(key)
        if entry is None or entry.ready is not None:
            return False, None
        return True, entry.value

    def get(self, key: str) -> tuple[bool, Any]:
        """Return ``(found, value)`` without loading; waits on pending entries."""
        with self.lock:
            entry = self.entries.get(key)
        if entry is None:
            return False, None
        if entry.ready is not None:
            entry.ready.wait()
        if entry.error is not None:
            raise entry.error
        return True, entry.value

    def ensure(self, key: str, load: Callable[[], Any]) -> Any:
        with self.lock:
            entry = self.entries.get(key)
            owner = entry is None
            if owner:
                entry = CacheEntry(ready=threading.Event())
                self.entries[key] = entry

        if owner:
            logger.debug("%s cache miss for %s", self.name, key)
            try:
                entry.value = load()
            except Exception as exc:
                error = ExternalDiscoveryError(key, exc)
                error.__cause__ = exc
                entry.error = error
            except BaseException as exc:
                # Interrupted loads are not memoized; the next caller retries.
                with self.lock:
                    self.entries.pop(key, None)
                entry.error = exc
                raise
            finally:
                entry.ready.set()
        elif entry.ready is not None:
            entry.ready.wait()

        if entry.error is not None:
            raise entry.error
        return entry.value


class RemoteCache:
    def __init__(
        self,
        known_repos: Iterable[Repo] = (),
        discovery: IRemoteDiscovery | None = None,
    ) -> None:
        self.discovery = discovery or VcsDiscovery()
        self._root = RemoteCacheMap("root")
        self._remote = RemoteCacheMap("remote")
        self._head = RemoteCacheMap("head")
        self._mod = RemoteCacheMap("mod")
        self._mod_version = RemoteCacheMap("mod_version")
        for repo in known_repos:
            self._root.seed(repo.go_prefix, RootValue(root=repo.go_prefix, name=repo.name))
            if repo.remote:
                self._remote.seed(
                    repo.go_prefix, RemoteValue(remote=repo.remote, vcs=repo.vcs)
                )
            self._mod.seed(
                repo.go_prefix,
                ModValue(path=repo.go_prefix, name=repo.name, known=True),
            )

    def __enter__(self) -> "RemoteCache":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.cleanup()

    def cleanup(self) -> None:
        self.discovery.cleanup()

    def populate_from_go_mod(self, path: Path) -> None:
        """Seed root entries for every module required by a go.mod file."""
        for requirement in read_go_mod(path):
            self._root.seed_default(
                requirement.path,
                RootValue(
                    root=requirement.path,
                    name=import_path_to_repo_name(requirement.path),
                ),
            )

    def _cached_root(self, import_path: str) -> RootValue | None:
        for prefix in prefixes(import_path):
            found, value = self._root.get(prefix)
            if found:
                return value
        return None

    def root(self, import_path: str) -> tuple[str, str]:
        """Return the repository root and name for an import path."""
        # Cached prefixes go first so known repositories keep their names.
        cached = self._cached_root(import_path)
        if cached is not None:
            return cached.root, cached.name

        for prefix, missing in KNOWN_PREFIXES:
            if not has_prefix(import_path, prefix):
                continue
            rest = trim_prefix(import_path, prefix)
            components = rest.split("/") if rest else []
            if len(components) < missing:
                raise ImportPathTooShortError(import_path, prefix)
            root = join_rel(prefix, *components[:missing])
            return root, import_path_to_repo_name(root)

        match = _GOPKG_IN_RE.match(import_path)
        if match:
            root = match.group(1)
            return root, import_path_to_repo_name(root)

        def load() -> RootValue:
            found = self.discovery.repo_root(import_path)
            return RootValue(root=found.root, name=import_path_to_repo_name(found.root))

        value = self._root.ensure(import_path, load)
        return value.root, value.name

    def known_root(self, import_path: str) -> tuple[str, str]:
        """Longest seeded root containing import_path, or ``("", "")``.

        Discovered, pending and failed entries are ignored.
        """
        for prefix in prefixes(import_path):
            found, value = self._root.get_known(prefix)
            if found:
                return value.root, value.name
        return "", ""

    def root_static(self, import_path: str) -> tuple[str, str]:
        """Like :meth:`root` but only consults cached entries; misses give ``("", "")``."""
        cached = self._cached_root(import_path)
        if cached is None:
            return "", ""
        return cached.root, cached.name

    def remote(self, root: str) -> tuple[str, str]:
        def load() -> RemoteValue:
            found = self.discovery.repo_root(root)
            return RemoteValue(remote=found.repo, vcs=found.vcs)

        value = self._remote.ensure(root, load)
        return value.remote, value.vcs

    def head(self, remote: str, vcs: str) -> tuple[str, str]:
        """Return the latest commit on the default branch.

        Only git is supported. The tag is always empty.
        """
        if vcs != "git":
            raise UnsupportedVcsError(remote, vcs)

        def load() -> HeadValue:
            return HeadValue(commit=self.discovery.head(remote, vcs))

        value = self._head.ensure(remote, load)
        return value.commit, value.tag

    def mod(self, import_path: str) -> tuple[str, str]:
        """Return the module path and repository name providing an import path."""
        for prefix in prefixes(import_path):
            found, value = self._mod.get(prefix)
            if not found:
                continue
            if value.known:
                return value.path, value.name
            break

        def load() -> ModValue:
            mod_path = self.discovery.module_path(import_path)
            return ModValue(path=mod_path, name=import_path_to_repo_name(mod_path))

        value = self._mod.ensure(import_path, load)
        return value.path, value.name

    def mod_version(self, mod_path: str, query: str) -> tuple[str, str, str]:
        """Return ``(name, version, sum)`` for a module version query."""

        def load() -> ModVersionValue:
            version, sum_ = self.discovery.module_version(mod_path, query)
            return ModVersionValue(version=version, sum=sum_)

        value = self._mod_version.ensure(f"{mod_path}@{query}", load)

        found, known = self._mod.get(mod_path)
        if found and known.known:
            name = known.name
        else:
            name = import_path_to_repo_name(mod_path)
        return name, value.version, value.sum


def update_repo(cache: RemoteCache, import_path: str) -> Repo:
    root, name = cache.root(import_path)
    remote, vcs = cache.remote(root)
    commit, tag = cache.head(remote, vcs)
    return Repo(
        name=name,
        go_prefix=root,
        commit=commit,
        tag=tag,
        remote=remote,
        vcs=vcs,
    )
