import threading
from pathlib import Path

import pytest

from build_resolver.errors import (
    ExternalDiscoveryError,
    ImportPathTooShortError,
    UnsupportedVcsError,
)
from build_resolver.models import Repo
from build_resolver.remote import RemoteCache, update_repo
from build_resolver.remote.discovery import RepoRoot

PRIVATE_REPOS = (
    Repo(name="com_other_host_repo", go_prefix="other-host.com/repo"),
    Repo(name="com_private_my_repo", go_prefix="private.com/my/repo"),
)


@pytest.mark.parametrize(
    ("import_path", "want_root", "want_name"),
    [
        ("golang.org/x/net/context", "golang.org/x/net", "org_golang_x_net"),
        ("golang.org/x/tools/go/vcs", "golang.org/x/tools", "org_golang_x_tools"),
        ("golang.org/x/goimports", "golang.org/x/goimports", "org_golang_x_goimports"),
        ("cloud.google.com/fashion/industry", "cloud.google.com/fashion", "com_google_cloud_fashion"),
        ("github.com/foo/bar", "github.com/foo/bar", "com_github_foo_bar"),
        ("github.com/foo/bar/baz", "github.com/foo/bar", "com_github_foo_bar"),
        ("gopkg.in/yaml.v2", "gopkg.in/yaml.v2", "in_gopkg_yaml_v2"),
        ("gopkg.in/src-d/go-git.v4", "gopkg.in/src-d/go-git.v4", "in_gopkg_src_d_go_git_v4"),
    ],
)
def test_root_special_cases_skip_discovery(
    stub_discovery, import_path: str, want_root: str, want_name: str
) -> None:
    cache = RemoteCache(discovery=stub_discovery)

    assert cache.root(import_path) == (want_root, want_name)
    assert not stub_discovery.calls


def test_root_rejects_paths_shorter_than_known_prefix(stub_discovery) -> None:
    cache = RemoteCache(discovery=stub_discovery)

    with pytest.raises(ImportPathTooShortError):
        cache.root("github.com/foo")


def test_root_prefers_known_repos(stub_discovery) -> None:
    cache = RemoteCache(PRIVATE_REPOS, discovery=stub_discovery)

    assert cache.root("private.com/my/repo/package/path") == (
        "private.com/my/repo",
        "com_private_my_repo",
    )


def test_known_repo_name_overrides_special_case(stub_discovery) -> None:
    cache = RemoteCache(
        [Repo(name="custom_repo", go_prefix="github.com/foo/bar")], discovery=stub_discovery
    )

    assert cache.root("github.com/foo/bar") == ("github.com/foo/bar", "custom_repo")


def test_root_wraps_discovery_failures(stub_discovery) -> None:
    cache = RemoteCache(PRIVATE_REPOS, discovery=stub_discovery)

    with pytest.raises(ExternalDiscoveryError) as exc_info:
        cache.root("unsupported.org/x/net/context")

    assert exc_info.value.key == "unsupported.org/x/net/context"
    assert isinstance(exc_info.value.__cause__, RuntimeError)


def test_root_failures_are_memoized(stub_discovery) -> None:
    cache = RemoteCache(discovery=stub_discovery)

    with pytest.raises(ExternalDiscoveryError) as first:
        cache.root("unsupported.org/x")
    with pytest.raises(ExternalDiscoveryError) as second:
        cache.root("unsupported.org/x")

    assert first.value is second.value
    assert stub_discovery.calls[("repo_root", "unsupported.org/x")] == 1


def test_root_discovers_once_per_import_path(stub_discovery) -> None:
    cache = RemoteCache(discovery=stub_discovery)

    assert cache.root("example.com/repo/sub") == ("example.com/repo", "com_example_repo")
    assert cache.root("example.com/repo/sub") == ("example.com/repo", "com_example_repo")

    assert stub_discovery.calls[("repo_root", "example.com/repo/sub")] == 1


def test_root_static_never_discovers(stub_discovery) -> None:
    cache = RemoteCache(PRIVATE_REPOS, discovery=stub_discovery)

    assert cache.root_static("private.com/my/repo/package/path") == (
        "private.com/my/repo",
        "com_private_my_repo",
    )
    assert cache.root_static("unsupported.org/x/net/context") == ("", "")
    assert not stub_discovery.calls


def test_known_root_ignores_discovered_and_failed_entries(stub_discovery) -> None:
    cache = RemoteCache(PRIVATE_REPOS, discovery=stub_discovery)
    cache.root("example.com/repo")
    with pytest.raises(ExternalDiscoveryError):
        cache.root("unsupported.org/x")

    assert cache.known_root("private.com/my/repo/pkg") == ("private.com/my/repo", "com_private_my_repo")
    assert cache.known_root("example.com/repo/pkg") == ("", "")
    assert cache.known_root("unsupported.org/x/y") == ("", "")


def test_interrupted_discovery_is_not_memoized(stub_discovery, monkeypatch) -> None:
    cache = RemoteCache(discovery=stub_discovery)
    original = stub_discovery.repo_root
    attempts = []

    def interrupted_once(import_path: str) -> RepoRoot:
        attempts.append(import_path)
        if len(attempts) == 1:
            raise SystemExit(1)
        return original(import_path)

    monkeypatch.setattr(stub_discovery, "repo_root", interrupted_once)

    with pytest.raises(SystemExit):
        cache.root("example.com/repo")

    assert cache.root("example.com/repo") == ("example.com/repo", "com_example_repo")
    assert len(attempts) == 2


def test_root_populated_from_go_mod(tmp_path: Path, stub_discovery) -> None:
    go_mod = tmp_path / "go.mod"
    go_mod.write_text(
        "module example.com/use\n\nrequire example.com/good v1.0.0\n", encoding="utf-8"
    )
    cache = RemoteCache(discovery=stub_discovery)

    cache.populate_from_go_mod(go_mod)

    assert cache.root("example.com/good/pkg") == ("example.com/good", "com_example_good")
    assert cache.root_static("example.com/bad/pkg") == ("", "")
    assert not stub_discovery.calls


def test_go_mod_does_not_replace_known_repo_names(tmp_path: Path, stub_discovery) -> None:
    go_mod = tmp_path / "go.mod"
    go_mod.write_text("require github.com/foo/bar v1.0.0\n", encoding="utf-8")
    cache = RemoteCache(
        [Repo(name="custom_repo", go_prefix="github.com/foo/bar")], discovery=stub_discovery
    )

    cache.populate_from_go_mod(go_mod)

    assert cache.root("github.com/foo/bar/baz") == ("github.com/foo/bar", "custom_repo")


def test_remote_uses_known_repo_remote(stub_discovery) -> None:
    cache = RemoteCache(
        [
            Repo(
                name="com_example_custom",
                go_prefix="example.com/custom",
                remote="https://mirror.example.com/custom.git",
                vcs="git",
            )
        ],
        discovery=stub_discovery,
    )

    assert cache.remote("example.com/custom") == ("https://mirror.example.com/custom.git", "git")
    assert not stub_discovery.calls


def test_remote_discovers_unknown_roots(stub_discovery) -> None:
    cache = RemoteCache(discovery=stub_discovery)

    assert cache.remote("example.com/repo") == ("https://example.com/repo.git", "git")
    with pytest.raises(ExternalDiscoveryError):
        cache.remote("unsupported.org/x")


def test_head_only_supports_git(stub_discovery) -> None:
    cache = RemoteCache(discovery=stub_discovery)

    assert cache.head("https://example.com/repo", "git") == ("abcdef", "")
    with pytest.raises(UnsupportedVcsError):
        cache.head("https://example.com/repo", "hg")
    with pytest.raises(ExternalDiscoveryError):
        cache.head("https://unknown.example.com/repo", "git")


def test_mod_uses_known_entries(stub_discovery) -> None:
    cache = RemoteCache(
        [Repo(name="com_example_known", go_prefix="example.com/known")],
        discovery=stub_discovery,
    )

    assert cache.mod("example.com/known/v2/foo") == ("example.com/known", "com_example_known")
    assert not stub_discovery.calls


def test_mod_discovers_unknown_modules(stub_discovery) -> None:
    cache = RemoteCache(discovery=stub_discovery)

    assert cache.mod("example.com/stub/v2/foo") == ("example.com/stub/v2", "com_example_stub_v2")
    assert cache.mod("example.com/stub/v2/foo") == ("example.com/stub/v2", "com_example_stub_v2")
    assert stub_discovery.calls[("module_path", "example.com/stub/v2/foo")] == 1
    with pytest.raises(ExternalDiscoveryError):
        cache.mod("example.com/missing")


def test_mod_version_uses_known_names(stub_discovery) -> None:
    cache = RemoteCache(
        [Repo(name="custom_known", go_prefix="example.com/known")], discovery=stub_discovery
    )

    assert cache.mod_version("example.com/known", "latest") == (
        "custom_known",
        "v1.2.3",
        "h1:abcdef",
    )
    assert cache.mod_version("example.com/unknown", "latest") == (
        "com_example_unknown",
        "v1.2.3",
        "h1:abcdef",
    )
    with pytest.raises(ExternalDiscoveryError):
        cache.mod_version("example.com/nope", "latest")


def test_update_repo_combines_root_remote_and_head(stub_discovery) -> None:
    cache = RemoteCache(discovery=stub_discovery)

    repo = update_repo(cache, "example.com/repo.git/pkg")

    assert repo == Repo(
        name="com_example_repo_git",
        go_prefix="example.com/repo.git",
        commit="abcdef",
        tag="",
        remote="https://example.com/repo.git",
        vcs="git",
    )


def test_context_manager_cleans_up_discovery(stub_discovery) -> None:
    with RemoteCache(discovery=stub_discovery) as cache:
        cache.root("github.com/foo/bar")

    assert stub_discovery.cleaned is True


def test_concurrent_lookups_share_one_discovery(stub_discovery) -> None:
    release = threading.Event()
    started = threading.Event()
    original = stub_discovery.repo_root

    def slow_repo_root(import_path: str) -> RepoRoot:
        started.set()
        release.wait(timeout=5)
        return original(import_path)

    stub_discovery.repo_root = slow_repo_root
    cache = RemoteCache(discovery=stub_discovery)
    results: list[tuple[str, str]] = []
    errors: list[BaseException] = []

    def worker() -> None:
        try:
            results.append(cache.root("example.com/repo/x"))
        except BaseException as exc:  # pragma: no cover - surfaced by the assert below
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    assert started.wait(timeout=5)
    release.set()
    for thread in threads:
        thread.join(timeout=5)

    assert not errors
    assert results == [("example.com/repo", "com_example_repo")] * 8
    assert stub_discovery.calls[("repo_root", "example.com/repo/x")] == 1


def test_concurrent_failures_share_one_error(stub_discovery) -> None:
    barrier = threading.Barrier(4)
    cache = RemoteCache(discovery=stub_discovery)
    seen: list[BaseException] = []
    lock = threading.Lock()

    def worker() -> None:
        barrier.wait(timeout=5)
        try:
            cache.root("unsupported.org/x")
        except ExternalDiscoveryError as exc:
            with lock:
                seen.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert len(seen) == 4
    assert all(item is seen[0] for item in seen)
    assert stub_discovery.calls[("repo_root", "unsupported.org/x")] == 1
