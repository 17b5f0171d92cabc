import pytest

from build_resolver.config import ResolverConfig
from build_resolver.errors import AmbiguousImportError, NonProtoImportError, SelfImportError
from build_resolver.label import Label
from build_resolver.languages.proto import known_go_import, known_proto_import, proto_sources
from build_resolver.models import DependencyMode, ImportSpec, Rule

PREFIX_CONFIG = ResolverConfig(go_prefix="example.com/repo")

INDEXED_FILES = {
    "sub": [
        Rule(kind="proto_library", name="foo_proto", attrs={"srcs": ["bar.proto"]}),
        Rule(
            kind="go_proto_library",
            name="foo_go_proto",
            attrs={"importpath": "example.com/foo", "proto": ":foo_proto"},
        ),
        Rule(
            kind="go_library",
            name="embed",
            attrs={"importpath": "example.com/foo", "embed": [":foo_go_proto"]},
        ),
    ]
}


def resolve_generated(resolver, imp: str, from_label: Label) -> Label:
    return resolver.resolve_spec(ImportSpec("proto", imp), "go", from_label)


@pytest.mark.parametrize(
    ("imp", "from_pkg", "dep_mode", "want_proto", "want_go"),
    [
        (
            "foo.proto",
            "",
            DependencyMode.EXTERNAL,
            Label(name="repo_proto"),
            Label(name="go_default_library"),
        ),
        (
            "foo/bar/bar.proto",
            "",
            DependencyMode.EXTERNAL,
            Label(pkg="foo/bar", name="bar_proto"),
            Label(pkg="foo/bar", name="go_default_library"),
        ),
        (
            "foo/bar/bar.proto",
            "vendor",
            DependencyMode.VENDORED,
            Label(pkg="foo/bar", name="bar_proto"),
            Label(pkg="vendor/foo/bar", name="go_default_library"),
        ),
        (
            "google/protobuf/any.proto",
            "",
            DependencyMode.EXTERNAL,
            Label(repo="com_google_protobuf", name="any_proto"),
            Label(repo="io_bazel_rules_go", pkg="proto/wkt", name="any_go_proto"),
        ),
        (
            "google/api/http.proto",
            "",
            DependencyMode.EXTERNAL,
            Label(repo="go_googleapis", pkg="google/api", name="annotations_proto"),
            Label(repo="go_googleapis", pkg="google/api", name="annotations_go_proto"),
        ),
    ],
)
def test_resolve_proto_without_rules(
    make_resolver,
    imp: str,
    from_pkg: str,
    dep_mode: DependencyMode,
    want_proto: Label,
    want_go: Label,
) -> None:
    resolver = make_resolver(ResolverConfig(go_prefix="example.com/repo", dep_mode=dep_mode))
    from_label = Label(pkg=from_pkg, name="x")

    assert resolver.resolve("proto", imp, from_label) == want_proto
    assert resolve_generated(resolver, imp, from_label) == want_go


def test_resolve_proto_from_index(make_resolver) -> None:
    resolver = make_resolver(PREFIX_CONFIG, INDEXED_FILES)
    from_label = Label(pkg="baz", name="x")

    assert resolver.resolve("proto", "sub/bar.proto", from_label) == Label(pkg="sub", name="foo_proto")
    assert resolve_generated(resolver, "sub/bar.proto", from_label) == Label(pkg="sub", name="embed")


def test_generated_falls_back_to_schema_rule(make_resolver) -> None:
    resolver = make_resolver(
        PREFIX_CONFIG,
        {"sub": [Rule(kind="proto_library", name="foo_proto", attrs={"srcs": ["bar.proto"]})]},
    )

    assert resolve_generated(resolver, "sub/bar.proto", Label(pkg="baz", name="x")) == Label(
        pkg="sub", name="foo_proto"
    )


def test_generated_self_import(make_resolver) -> None:
    resolver = make_resolver(PREFIX_CONFIG, INDEXED_FILES)

    with pytest.raises(SelfImportError):
        resolve_generated(resolver, "sub/bar.proto", Label(pkg="sub", name="embed"))


def test_proto_self_import(make_resolver) -> None:
    resolver = make_resolver(PREFIX_CONFIG, INDEXED_FILES)

    with pytest.raises(SelfImportError):
        resolver.resolve("proto", "sub/bar.proto", Label(pkg="sub", name="foo_proto"))
    with pytest.raises(SelfImportError):
        resolver.resolve(
            "proto", "google/protobuf/any.proto", Label(repo="com_google_protobuf", name="any_proto")
        )


def test_proto_ambiguity(make_resolver) -> None:
    resolver = make_resolver(
        PREFIX_CONFIG,
        {
            "sub": [
                Rule(kind="proto_library", name="a_proto", attrs={"srcs": ["bar.proto"]}),
                Rule(kind="proto_library", name="b_proto", attrs={"srcs": ["bar.proto"]}),
            ]
        },
    )

    with pytest.raises(AmbiguousImportError):
        resolver.resolve("proto", "sub/bar.proto", Label(pkg="baz", name="x"))


def test_non_proto_imports_are_rejected(make_resolver) -> None:
    resolver = make_resolver(PREFIX_CONFIG)

    with pytest.raises(NonProtoImportError):
        resolver.resolve("proto", "sub/bar.txt", Label(pkg="baz", name="x"))
    with pytest.raises(NonProtoImportError):
        resolve_generated(resolver, "sub/bar.txt", Label(pkg="baz", name="x"))


def test_known_protos_can_be_disabled(make_resolver) -> None:
    resolver = make_resolver(
        ResolverConfig(go_prefix="example.com/repo", use_known_proto_imports=False)
    )

    assert resolver.resolve("proto", "google/protobuf/any.proto", Label(name="x")) == Label(
        pkg="google/protobuf", name="protobuf_proto"
    )


def test_proto_sources_apply_import_prefixes() -> None:
    rule = Rule(
        kind="proto_library",
        name="c_proto",
        attrs={
            "srcs": ["c.proto", "d.proto", "//other:e.proto", "notes.txt"],
            "strip_import_prefix": "/a",
            "import_prefix": "x",
        },
    )

    assert proto_sources(rule, "a/b") == ["x/b/c.proto", "x/b/d.proto"]


def test_proto_sources_relative_strip_prefix() -> None:
    rule = Rule(
        kind="proto_library",
        name="c_proto",
        attrs={"srcs": ["b/c.proto"], "strip_import_prefix": "b"},
    )

    assert proto_sources(rule, "a") == ["c.proto"]
    assert proto_sources(rule, "z") == ["c.proto"]
    assert proto_sources(rule, "") == ["c.proto"]


def test_known_tables() -> None:
    assert known_proto_import("google/protobuf/timestamp.proto") == Label(
        repo="com_google_protobuf", name="timestamp_proto"
    )
    assert known_proto_import("example/unknown.proto") is None
    assert known_go_import("github.com/golang/protobuf/ptypes/duration") == Label(
        repo="io_bazel_rules_go", pkg="proto/wkt", name="duration_go_proto"
    )
