from build_resolver.label.label import (
    NO_LABEL,
    Label,
    import_path_to_repo_name,
    parse_label,
)
from build_resolver.label.pattern import NO_PATTERN, Pattern, parse_pattern

__all__ = [
    "NO_LABEL",
    "NO_PATTERN",
    "Label",
    "Pattern",
    "import_path_to_repo_name",
    "parse_label",
    "parse_pattern",
]
