from __future__ import annotations

import os
import sys
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import TextIO

from . import metadata as md
from .formatting import emit_listing, emit_path
from .metadata import Metadata
from .predicates import Kind, Predicate, evaluate

PROG = "minifind"


@dataclass(frozen=True)
class Options:
    quiet: bool = False


def _warn(options: Options, msg: str) -> None:
    if not options.quiet:
        print(f"{PROG}: {msg}", file=sys.stderr)


def _errtext(e: OSError) -> str:
    return e.strerror or str(e)


def _write(options: Options, path: str, emit, *args) -> None:
    try:
        emit(*args)
    except BrokenPipeError:
        raise
    except OSError as e:
        _warn(options, f"cannot write '{path}': {_errtext(e)}")


def _owner_names(path: str, meta: Metadata, options: Options) -> tuple[str, str]:
    names = []
    for lookup, ident in ((md.lookup_user_by_id, meta.uid), (md.lookup_group_by_id, meta.gid)):
        try:
            name = lookup(ident)
        except OSError as e:
            _warn(options, f"-ls lookup failed for '{path}': {_errtext(e)}")
            name = None
        names.append(name or str(ident))
    return names[0], names[1]


def evaluate_chain(
    path: str,
    meta: Metadata,
    chain: Sequence[Predicate],
    options: Options,
    out: TextIO,
) -> bool:
    """Run the whole predicate chain for one entry.

    Filters overwrite the running match value instead of and-ing into it,
    and ``-print``/``-ls`` fire where they stand, gated by that value. If
    neither appears, the entry is printed once at the end when the final
    value is true. Returns the final value.
    """
    current = True
    explicit_output = False

    for pred in chain:
        if pred.kind is Kind.PRINT:
            explicit_output = True
            if current:
                _write(options, path, emit_path, path, out)
        elif pred.kind is Kind.LS:
            explicit_output = True
            if current:
                user, group = _owner_names(path, meta, options)
                _write(options, path, emit_listing, path, meta, out, user, group)
        else:
            try:
                current = evaluate(pred, path, meta)
            except OSError as e:
                _warn(options, f"{pred.kind.flag} lookup failed for '{path}': {_errtext(e)}")
                current = False

    if not explicit_output and current:
        _write(options, path, emit_path, path, out)
    return current


def _entries(it, dir_path: str, options: Options) -> Iterator[os.DirEntry]:
    while True:
        try:
            entry = next(it)
        except StopIteration:
            return
        except OSError as e:
            _warn(options, f"error reading '{dir_path}': {_errtext(e)}")
            return
        if entry.name not in (".", ".."):
            yield entry


def _walk_dir(
    dir_path: str,
    chain: Sequence[Predicate],
    options: Options,
    out: TextIO,
) -> int:
    try:
        it = os.scandir(dir_path)
    except OSError as e:
        _warn(options, f"cannot read directory '{dir_path}': {_errtext(e)}")
        return 0

    visited = 0
    with it:
        for entry in _entries(it, dir_path, options):
            path = os.path.join(dir_path, entry.name)
            try:
                child = md.stat(path)
            except OSError as e:
                _warn(options, f"cannot access '{path}': {_errtext(e)}")
                continue
            visited += _visit(path, child, chain, options, out)
    return visited


def _visit(
    path: str,
    meta: Metadata,
    chain: Sequence[Predicate],
    options: Options,
    out: TextIO,
) -> int:
    evaluate_chain(path, meta, chain, options, out)
    visited = 1
    if meta.is_dir:
        visited += _walk_dir(path, chain, options, out)
    return visited


def walk(
    root: str,
    chain: Sequence[Predicate],
    options: Options | None = None,
    out: TextIO | None = None,
) -> int:
    """Evaluate ``root`` and, depth first, everything below it.

    Symlinks are reported as links and never followed. Returns the number
    of entries the chain was evaluated against.
    """
    options = options or Options()
    out = out if out is not None else sys.stdout
    try:
        meta = md.stat(root)
    except OSError as e:
        _warn(options, f"cannot access '{root}': {_errtext(e)}")
        return 0
    return _visit(root, meta, chain, options, out)


def search(
    roots: Sequence[str],
    chain: Sequence[Predicate],
    options: Options | None = None,
    out: TextIO | None = None,
) -> int:
    if not roots:
        roots = ["."]

    return sum(walk(root, chain, options, out) for root in roots)
