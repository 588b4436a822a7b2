from __future__ import annotations

import grp
import os
import pwd
import stat as statmod
from dataclasses import dataclass


@dataclass(frozen=True)
class Metadata:
    mode: int
    ino: int = 0
    nlink: int = 1
    uid: int = 0
    gid: int = 0
    size: int = 0
    blocks: int = 0  # 512-byte units
    mtime: float = 0.0

    @classmethod
    def from_stat_result(cls, st: os.stat_result) -> Metadata:
        return cls(
            mode=st.st_mode,
            ino=st.st_ino,
            nlink=st.st_nlink,
            uid=st.st_uid,
            gid=st.st_gid,
            size=st.st_size,
            blocks=getattr(st, "st_blocks", 0),
            mtime=st.st_mtime,
        )

    @property
    def file_type(self) -> int:
        return statmod.S_IFMT(self.mode)

    @property
    def is_dir(self) -> bool:
        return statmod.S_ISDIR(self.mode)


def stat(path: str) -> Metadata:
    """Metadata for ``path`` without following a trailing symlink.

    Raises ``OSError`` when the entry cannot be examined.
    """
    return Metadata.from_stat_result(os.lstat(path))


def lookup_user_by_id(uid: int) -> str | None:
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return None


def lookup_user_by_name(name: str) -> int | None:
    try:
        return pwd.getpwnam(name).pw_uid
    except KeyError:
        return None


def lookup_group_by_id(gid: int) -> str | None:
    try:
        return grp.getgrgid(gid).gr_name
    except KeyError:
        return None


def lookup_group_by_name(name: str) -> int | None:
    try:
        return grp.getgrnam(name).gr_gid
    except KeyError:
        return None


def parse_id(text: str) -> int | None:
    """Parse a numeric user/group id with C ``strtol`` base-0 rules.

    ``0x1f`` is hex, ``017`` is octal, everything else decimal. Returns
    None unless the whole string is a non-negative number.
    """
    s = text.strip()
    if s.startswith("+"):
        s = s[1:]
    if s[:2].lower() == "0x":
        digits, base = s[2:], 16
    elif len(s) > 1 and s[0] == "0":
        digits, base = s[1:], 8
    else:
        digits, base = s, 10
    # int() would also accept signs, underscores and non-ASCII digits
    if not (digits.isascii() and digits.isalnum()):
        return None
    try:
        return int(digits, base)
    except ValueError:
        return None
