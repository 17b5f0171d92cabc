from build_resolver.remote.cache import KNOWN_PREFIXES, RemoteCache, update_repo
from build_resolver.remote.discovery import IRemoteDiscovery, RepoRoot, VcsDiscovery
from build_resolver.remote.gomod import ModuleRequirement, parse_go_mod, read_go_mod

__all__ = [
    "KNOWN_PREFIXES",
    "IRemoteDiscovery",
    "ModuleRequirement",
    "RemoteCache",
    "RepoRoot",
    "VcsDiscovery",
    "parse_go_mod",
    "read_go_mod",
    "update_repo",
]
