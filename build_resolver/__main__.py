from pathlib import Path
from typing import Callable, Dict, Optional

import click
from rich.console import Console

from build_resolver.config import ConfigRepository, ResolverConfig
from build_resolver.constants import CONFIG_FILENAME, MANIFEST_FILENAME
from build_resolver.errors import ResolverError
from build_resolver.index import RuleIndex
from build_resolver.label import Label, parse_label, parse_pattern
from build_resolver.languages import default_languages, list_registered_languages
from build_resolver.log import setup_logging
from build_resolver.models import ImportSpec
from build_resolver.remote import RemoteCache, update_repo
from build_resolver.resolver import Resolver
from build_resolver.tui.renderers import ResolverConsoleUI
from build_resolver.workspace import WorkspaceManifest, WorkspaceRepository


def _config_option() -> Callable:
    return click.option(
        "--config",
        "config_path",
        type=click.Path(path_type=Path, dir_okay=False),
        default=None,
        help=f"Resolver config file (default: ./{CONFIG_FILENAME}).",
    )


def _manifest_option() -> Callable:
    return click.option(
        "--manifest",
        "manifest_path",
        type=click.Path(path_type=Path, dir_okay=False),
        default=None,
        help=f"Workspace manifest file (default: ./{MANIFEST_FILENAME}).",
    )


def _load_config(config_path: Optional[Path]) -> ResolverConfig:
    try:
        if config_path is None:
            return ConfigRepository().load_or_default()
        return ConfigRepository(config_path).load()
    except ResolverError as exc:
        raise click.ClickException(str(exc))


def _load_manifest(manifest_path: Optional[Path]) -> WorkspaceManifest:
    repository = WorkspaceRepository(manifest_path)
    if manifest_path is None and not repository.path.exists():
        return WorkspaceManifest()
    try:
        return repository.load()
    except ResolverError as exc:
        raise click.ClickException(str(exc))


def _open_cache(config: ResolverConfig) -> RemoteCache:
    cache = RemoteCache(config.known_repos)
    if config.go_mod is not None:
        try:
            cache.populate_from_go_mod(config.go_mod)
        except ResolverError as exc:
            raise click.ClickException(str(exc))
    return cache


def _build_index(config: ResolverConfig, manifest: WorkspaceManifest) -> RuleIndex:
    index = RuleIndex(config, default_languages(config))
    try:
        for build_file in manifest.build_files:
            index.add_rules_from_file(build_file)
        index.finish()
    except ResolverError as exc:
        raise click.ClickException(str(exc))
    return index


def _parse_label_option(value: str) -> Label:
    try:
        return parse_label(value)
    except ResolverError as exc:
        raise click.BadParameter(str(exc))


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-v", "--verbose", is_flag=True, help="Log discovery and index details.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Resolve build dependencies for Go and proto imports."""
    setup_logging("DEBUG" if verbose else None)
    ctx.obj = {}


@cli.command(help="Resolve one import to a dependency label.")
@click.argument("lang", type=click.Choice(list_registered_languages(), case_sensitive=False))
@click.argument("imp")
@click.option("--from", "from_value", required=True, help="Label of the requesting rule.")
@click.option(
    "--rule-lang",
    default=None,
    help="Language of the requesting rule when it differs from LANG.",
)
@_config_option()
@_manifest_option()
@click.pass_obj
def resolve(
    obj: Dict[str, str],
    lang: str,
    imp: str,
    from_value: str,
    rule_lang: Optional[str],
    config_path: Optional[Path],
    manifest_path: Optional[Path],
) -> None:
    ui = ResolverConsoleUI(Console())
    from_label = _parse_label_option(from_value).abs("", "")
    config = _load_config(config_path)
    index = _build_index(config, _load_manifest(manifest_path))

    with _open_cache(config) as cache:
        resolver = Resolver.from_languages(config, index, cache)
        try:
            label = resolver.resolve_spec(
                ImportSpec(lang.lower(), imp), (rule_lang or lang).lower(), from_label
            )
        except ResolverError as exc:
            raise click.ClickException(str(exc))
    ui.render_resolved(lang.lower(), imp, from_label, label)


@cli.command(help="Resolve the imports listed for rules in the manifest.")
@click.argument("labels", nargs=-1)
@_config_option()
@_manifest_option()
@click.pass_obj
def deps(
    obj: Dict[str, str],
    labels: tuple[str, ...],
    config_path: Optional[Path],
    manifest_path: Optional[Path],
) -> None:
    ui = ResolverConsoleUI(Console())
    config = _load_config(config_path)
    manifest = _load_manifest(manifest_path)
    index = _build_index(config, manifest)

    targets = [_parse_label_option(value).abs("", "") for value in labels] or sorted(
        manifest.imports, key=str
    )
    failed = False
    with _open_cache(config) as cache:
        resolver = Resolver.from_languages(config, index, cache)
        for target in targets:
            rule = manifest.find_rule(target)
            if rule is None:
                raise click.ClickException(f"Rule not found in manifest: {target}")
            try:
                result = resolver.resolve_imports(rule, target, manifest.imports.get(target, []))
            except ResolverError as exc:
                raise click.ClickException(str(exc))
            ui.render_resolve_result(target, result)
            failed = failed or not result.is_valid()

    if failed:
        raise click.exceptions.Exit(1)


@cli.command(help="Print the import index built from the manifest.")
@_config_option()
@_manifest_option()
@click.pass_obj
def index(obj: Dict[str, str], config_path: Optional[Path], manifest_path: Optional[Path]) -> None:
    ui = ResolverConsoleUI(Console())
    config = _load_config(config_path)
    rule_index = _build_index(config, _load_manifest(manifest_path))
    ui.render_index(rule_index.entries(), rule_index.errors)


@cli.command(help="Find the repository root of a Go import path.")
@click.argument("import_path")
@_config_option()
@click.pass_obj
def root(obj: Dict[str, str], import_path: str, config_path: Optional[Path]) -> None:
    ui = ResolverConsoleUI(Console())
    config = _load_config(config_path)
    with _open_cache(config) as cache:
        try:
            repo_root, name = cache.root(import_path)
        except ResolverError as exc:
            raise click.ClickException(str(exc))
    ui.render_facts("root", [("Import path", import_path), ("Root", repo_root), ("Name", name)])


@cli.command(help="Find the module providing a Go import path.")
@click.argument("import_path")
@_config_option()
@click.pass_obj
def mod(obj: Dict[str, str], import_path: str, config_path: Optional[Path]) -> None:
    ui = ResolverConsoleUI(Console())
    config = _load_config(config_path)
    with _open_cache(config) as cache:
        try:
            mod_path, name = cache.mod(import_path)
        except ResolverError as exc:
            raise click.ClickException(str(exc))
    ui.render_facts("module", [("Import path", import_path), ("Module", mod_path), ("Name", name)])


@cli.command(help="Find the remote URL and VCS of a repository root.")
@click.argument("repo_root")
@_config_option()
@click.pass_obj
def remote(obj: Dict[str, str], repo_root: str, config_path: Optional[Path]) -> None:
    ui = ResolverConsoleUI(Console())
    config = _load_config(config_path)
    with _open_cache(config) as cache:
        try:
            url, vcs = cache.remote(repo_root)
        except ResolverError as exc:
            raise click.ClickException(str(exc))
    ui.render_facts("remote", [("Root", repo_root), ("Remote", url), ("VCS", vcs)])


@cli.command(help="Find the latest commit of a remote repository.")
@click.argument("remote_url")
@click.option("--vcs", default="git", show_default=True)
@click.pass_obj
def head(obj: Dict[str, str], remote_url: str, vcs: str) -> None:
    ui = ResolverConsoleUI(Console())
    with RemoteCache() as cache:
        try:
            commit, tag = cache.head(remote_url, vcs)
        except ResolverError as exc:
            raise click.ClickException(str(exc))
    ui.render_facts("head", [("Remote", remote_url), ("Commit", commit), ("Tag", tag)])


@cli.command(help="Describe the external repository providing a Go import path.")
@click.argument("import_path")
@_config_option()
@click.pass_obj
def repo(obj: Dict[str, str], import_path: str, config_path: Optional[Path]) -> None:
    ui = ResolverConsoleUI(Console())
    config = _load_config(config_path)
    with _open_cache(config) as cache:
        try:
            found = update_repo(cache, import_path)
        except ResolverError as exc:
            raise click.ClickException(str(exc))
    ui.render_repo(found)


@cli.command(help="Check which labels a target pattern matches.")
@click.argument("pattern")
@click.argument("labels", nargs=-1, required=True)
@click.pass_obj
def match(obj: Dict[str, str], pattern: str, labels: tuple[str, ...]) -> None:
    ui = ResolverConsoleUI(Console())
    try:
        parsed = parse_pattern(pattern)
    except ResolverError as exc:
        raise click.BadParameter(str(exc), param_hint="PATTERN")
    rows = [(value, parsed.matches(_parse_label_option(value))) for value in labels]
    ui.render_matches(str(parsed), rows)


def main() -> int:
    # Without standalone mode click returns Exit codes instead of raising them.
    try:
        code = cli(standalone_mode=False)
    except click.ClickException as exc:
        exc.show()
        return 2
    except click.exceptions.Abort:
        return 1
    return code if isinstance(code, int) else 0


if __name__ == "__main__":
    raise SystemExit(main())
