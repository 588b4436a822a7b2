from __future__ import annotations

import fnmatch
import re
import stat as statmod
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from . import metadata as md
from .metadata import Metadata


class Kind(Enum):
    NAME = ("-name", True, False)
    PATH = ("-path", True, False)
    TYPE = ("-type", True, False)
    USER = ("-user", True, False)
    GROUP = ("-group", True, False)
    NOUSER = ("-nouser", False, False)
    NOGROUP = ("-nogroup", False, False)
    PRINT = ("-print", False, True)
    LS = ("-ls", False, True)

    def __init__(self, flag: str, takes_arg: bool, is_action: bool) -> None:
        self.flag = flag
        self.takes_arg = takes_arg
        self.is_action = is_action

    @classmethod
    def from_flag(cls, flag: str) -> Kind:
        for kind in cls:
            if kind.flag == flag:
                return kind
        raise ValueError(f"unknown predicate: {flag}")


_TYPE_MAP = {
    "b": statmod.S_IFBLK,
    "c": statmod.S_IFCHR,
    "d": statmod.S_IFDIR,
    "p": statmod.S_IFIFO,
    "f": statmod.S_IFREG,
    "l": statmod.S_IFLNK,
    "s": statmod.S_IFSOCK,
}


@dataclass(frozen=True)
class Predicate:
    kind: Kind
    arg: str | None = None
    pattern: re.Pattern[str] | None = field(default=None, compare=False, repr=False)

    @property
    def is_action(self) -> bool:
        return self.kind.is_action


def _caret_to_bang(pattern: str) -> str:
    # fnmatch only knows [!...] for negation; [^...] means the same in fnmatch(3)
    out = []
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        out.append(c)
        i += 1
        if c != "[":
            continue
        j = i
        if j < n and pattern[j] in "!^":
            j += 1
        if j < n and pattern[j] == "]":
            j += 1
        end = pattern.find("]", j)
        if end < 0:
            continue  # unclosed, so the '[' is literal
        body = pattern[i:end]
        if body.startswith("^"):
            body = "!" + body[1:]
        out.append(body + "]")
        i = end + 1
    return "".join(out)


def compile_glob(pattern: str) -> re.Pattern[str]:
    # fnmatch has no escape character, so backslash already matches literally
    try:
        return re.compile(fnmatch.translate(_caret_to_bang(pattern)))
    except re.error as e:
        raise ValueError(f"bad pattern '{pattern}': {e}") from e


def make_predicate(flag: str | Kind, arg: str | None = None) -> Predicate:
    """Validate ``arg`` for ``flag`` and build an immutable predicate."""
    kind = flag if isinstance(flag, Kind) else Kind.from_flag(flag)
    if not kind.takes_arg:
        return Predicate(kind)
    if arg is None:
        raise ValueError(f"missing argument to {kind.flag}")

    if kind is Kind.TYPE:
        if arg not in _TYPE_MAP:
            raise ValueError(f"invalid argument '{arg}' to -type (expected one of bcdpfls)")
        return Predicate(kind, arg)
    if kind in (Kind.NAME, Kind.PATH):
        try:
            return Predicate(kind, arg, compile_glob(arg))
        except ValueError as e:
            raise ValueError(f"invalid argument to {kind.flag}: {e}") from e
    return Predicate(kind, arg)


def last_segment(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def _glob_match(pattern: str | re.Pattern[str], text: str) -> bool:
    if isinstance(pattern, str):
        pattern = compile_glob(pattern)
    return pattern.match(text) is not None


def match_name(path: str, meta: Metadata | None, pattern: str | re.Pattern[str]) -> bool:
    return _glob_match(pattern, last_segment(path))


def match_path(path: str, meta: Metadata | None, pattern: str | re.Pattern[str]) -> bool:
    # Matches the last segment only, same as -name.
    return _glob_match(pattern, last_segment(path))


def match_type(path: str, meta: Metadata, code: str) -> bool:
    try:
        wanted = _TYPE_MAP[code]
    except KeyError:
        raise ValueError(f"unknown type '{code}'") from None
    return meta.file_type == wanted


def match_user(path: str, meta: Metadata, who: str) -> bool:
    uid = md.lookup_user_by_name(who)
    if uid is not None and uid == meta.uid:
        return True
    return md.parse_id(who) == meta.uid


def match_group(path: str, meta: Metadata, which: str) -> bool:
    gid = md.lookup_group_by_name(which)
    if gid is not None and gid == meta.gid:
        return True
    return md.parse_id(which) == meta.gid


def match_nouser(path: str, meta: Metadata, arg: str | None = None) -> bool:
    return md.lookup_user_by_id(meta.uid) is None


def match_nogroup(path: str, meta: Metadata, arg: str | None = None) -> bool:
    return md.lookup_group_by_id(meta.gid) is None


_EVALUATORS: dict[Kind, Callable[..., bool]] = {
    Kind.NAME: match_name,
    Kind.PATH: match_path,
    Kind.TYPE: match_type,
    Kind.USER: match_user,
    Kind.GROUP: match_group,
    Kind.NOUSER: match_nouser,
    Kind.NOGROUP: match_nogroup,
}


def evaluate(pred: Predicate, path: str, meta: Metadata) -> bool:
    """Run one filter predicate against an entry.

    Identity lookups may raise ``OSError`` when the user or group database
    cannot be read.
    """
    if pred.is_action:
        raise ValueError(f"{pred.kind.flag} is an action, not a filter")
    arg = pred.pattern if pred.pattern is not None else pred.arg
    return _EVALUATORS[pred.kind](path, meta, arg)
