from typing import Final


VENDOR_DIRNAME: Final[str] = "vendor"

GO_LANG: Final[str] = "go"
PROTO_LANG: Final[str] = "proto"

DEFAULT_LIB_NAME: Final[str] = "go_default_library"
PROTO_SUFFIX: Final[str] = ".proto"
PROTO_RULE_SUFFIX: Final[str] = "_proto"
ROOT_BASE_NAME: Final[str] = "root"

GO_LIBRARY_KINDS: Final[tuple[str, ...]] = ("go_library",)
GO_PROTO_LIBRARY_KINDS: Final[tuple[str, ...]] = (
    "go_proto_library",
    "go_grpc_library",
)
GO_NON_LIBRARY_KINDS: Final[tuple[str, ...]] = (
    "go_binary",
    "go_test",
)
PROTO_LIBRARY_KINDS: Final[tuple[str, ...]] = ("proto_library",)

RULES_GO_REPO_NAME: Final[str] = "io_bazel_rules_go"
GAZELLE_REPO_NAME: Final[str] = "bazel_gazelle"

CONFIG_FILENAME: Final[str] = "build-resolver.yaml"
MANIFEST_FILENAME: Final[str] = "workspace.yaml"
LOG_LEVEL_ENV: Final[str] = "LOG_LEVEL"

REMOTE_CACHE_TMP_PREFIX: Final[str] = "build-resolver-remotecache-"
REMOTE_CACHE_MODULE: Final[str] = "build_resolver_remote_cache__"
HTTP_TIMEOUT_SECONDS: Final[int] = 20
