from build_resolver.constants import DEFAULT_LIB_NAME, PROTO_RULE_SUFFIX, ROOT_BASE_NAME
from build_resolver.label.pathtools import rel_base_name
from build_resolver.models import NamingConvention


def library_name(naming: NamingConvention, path: str) -> str:
    """Name of the Go library rule for a package path or import path."""
    if naming == NamingConvention.GO_DEFAULT_LIBRARY:
        return DEFAULT_LIB_NAME
    return rel_base_name(path) or ROOT_BASE_NAME


def proto_rule_name(rel: str, go_prefix: str = "") -> str:
    base = rel_base_name(rel) or rel_base_name(go_prefix) or ROOT_BASE_NAME
    return base + PROTO_RULE_SUFFIX
