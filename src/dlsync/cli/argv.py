"""
Argv preprocessor for forgiving CLI flag handling.

Normalizes sys.argv before Typer parses it:
- ``dlsync --version`` → ``dlsync version``
- ``dlsync run --debug`` → ``dlsync --debug run``
"""

_GLOBAL_FLAGS = {"--debug"}


def preprocess_argv(argv: list[str]) -> list[str]:
    """Normalize CLI arguments for Typer compatibility."""
    if not argv:
        return argv

    if argv[0] in ("--version", "-V"):
        return ["version"]

    hoisted: list[str] = []
    rest: list[str] = []
    for token in argv:
        if token in _GLOBAL_FLAGS:
            if token not in hoisted:
                hoisted.append(token)
        else:
            rest.append(token)
    return [*hoisted, *rest]
