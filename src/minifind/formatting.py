from __future__ import annotations

import stat as statmod
import time
from typing import TextIO

from . import metadata as md
from .metadata import Metadata

_TYPE_CHARS = {
    statmod.S_IFREG: "-",
    statmod.S_IFDIR: "d",
    statmod.S_IFLNK: "l",
    statmod.S_IFBLK: "b",
    statmod.S_IFCHR: "c",
    statmod.S_IFIFO: "p",
    statmod.S_IFSOCK: "s",
}

_PERM_BITS = (
    statmod.S_IRUSR, statmod.S_IWUSR, statmod.S_IXUSR,
    statmod.S_IRGRP, statmod.S_IWGRP, statmod.S_IXGRP,
    statmod.S_IROTH, statmod.S_IWOTH, statmod.S_IXOTH,
)


def permission_string(mode: int) -> str:
    """Render ``mode`` as ``ls -l`` does, e.g. ``drwxr-x---``.

    setuid, setgid and sticky bits are not shown.
    """
    chars = [_TYPE_CHARS.get(statmod.S_IFMT(mode), "-")]
    for i, bit in enumerate(_PERM_BITS):
        chars.append("rwx"[i % 3] if mode & bit else "-")
    return "".join(chars)


def format_mtime(ts: float) -> str:
    t = time.localtime(ts)
    return f"{time.strftime('%b', t)} {t.tm_mday:2d} {time.strftime('%H:%M', t)}"


def format_listing(
    path: str,
    meta: Metadata,
    user: str | None = None,
    group: str | None = None,
) -> str:
    if user is None:
        user = md.lookup_user_by_id(meta.uid) or str(meta.uid)
    if group is None:
        group = md.lookup_group_by_id(meta.gid) or str(meta.gid)
    return (
        f"{meta.ino:7d} {meta.blocks // 2:6d} {permission_string(meta.mode)} "
        f"{meta.nlink:3d} {user:<8} {group:<8} {meta.size:8d} "
        f"{format_mtime(meta.mtime)} {path}"
    )


def emit_path(path: str, out: TextIO) -> None:
    out.write(path + "\n")


def emit_listing(
    path: str,
    meta: Metadata,
    out: TextIO,
    user: str | None = None,
    group: str | None = None,
) -> None:
    out.write(format_listing(path, meta, user, group) + "\n")
