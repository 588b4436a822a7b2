from __future__ import annotations

import argparse
import contextlib
import sys
from collections.abc import Sequence

from .core import PROG, Options, search
from .predicates import Kind, Predicate, make_predicate

_HELP = {
    Kind.TYPE: "Entry type: b, c, d, p, f, l or s",
    Kind.PATH: "Glob pattern matched like -name",
    Kind.NAME: "Glob pattern to match the last path segment",
    Kind.USER: "Owning user name or numeric uid",
    Kind.GROUP: "Owning group name or numeric gid",
    Kind.NOUSER: "Owner uid has no user name",
    Kind.NOGROUP: "Owner gid has no group name",
    Kind.PRINT: "Print the path if the preceding tests matched",
    Kind.LS: "List the entry in ls -dils format if the preceding tests matched",
}

_FLAGS = {kind.flag: kind for kind in Kind}


def _epilog() -> str:
    lines = ["predicates (evaluated left to right):"]
    for kind, text in _HELP.items():
        usage = f"{kind.flag} ARG" if kind.takes_arg else kind.flag
        lines.append(f"  {usage:<16}{text}")
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog=PROG,
        description="Walk directory trees and print entries matching a predicate chain.",
        epilog=_epilog(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )
    p.add_argument("paths", nargs="*", default=["."], help="Root paths to search")
    p.add_argument("-q", "--quiet", action="store_true", help="Suppress error messages")
    return p


def split_predicates(
    argv: Sequence[str],
) -> tuple[list[str], list[tuple[str, str | None]]]:
    """Pull predicate flags and their arguments out of ``argv``.

    The word after an argument-taking flag is always its argument, even
    when it starts with ``-``. Everything else is left for argparse.
    """
    rest: list[str] = []
    tokens: list[tuple[str, str | None]] = []
    i = 0
    while i < len(argv):
        word = argv[i]
        kind = _FLAGS.get(word)
        if kind is None:
            rest.append(word)
        elif kind.takes_arg:
            arg = argv[i + 1] if i + 1 < len(argv) else None
            tokens.append((word, arg))
            i += 1
        else:
            tokens.append((word, None))
        i += 1
    return rest, tokens


def parse_chain(tokens: Sequence[tuple[str, str | None]]) -> list[Predicate]:
    return [make_predicate(flag, arg) for flag, arg in tokens]


def main(argv: Sequence[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    rest, tokens = split_predicates(argv)
    ns = build_parser().parse_args(rest)

    try:
        chain = parse_chain(tokens)
    except ValueError as e:
        print(f"{PROG}: {e}", file=sys.stderr)
        return 2

    try:
        search(ns.paths, chain, Options(quiet=ns.quiet))
        sys.stdout.flush()
    except BrokenPipeError:
        with contextlib.suppress(Exception):
            sys.stdout.close()
        return 0

    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
