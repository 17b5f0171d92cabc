_LOADED = False


def load_language_modules() -> None:
    global _LOADED
    if _LOADED:
        return

    from build_resolver.languages import go as _go  # noqa: F401
    from build_resolver.languages import proto as _proto  # noqa: F401

    _LOADED = True
