"""Path utilities: sanitize display names into path segments and rebuild paths.

These helpers centralize the rules used across the tree/trash services and the node store:
- A path always starts with '/' and never ends with '/';
- Each segment is the sanitized form of a display name (lower-cased, whitespace runs
  collapsed to '-', characters unsafe in paths removed);
- Display names themselves are never altered.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping

from app.packages.drive.core.constants import PATH_UNSAFE_CHARS

_WHITESPACE_RE = re.compile(r"\s+")
_UNSAFE_RE = re.compile("[" + re.escape(PATH_UNSAFE_CHARS) + "]")


def sanitize_segment(name: str) -> str:
    s = (name or "").strip()
    s = _WHITESPACE_RE.sub("-", s)
    s = _UNSAFE_RE.sub("", s)
    return s.lower()


def join_path(parent_path: str | None, name: str) -> str:
    base = (parent_path or "").rstrip("/")
    return f"{base}/{sanitize_segment(name)}"


def build_path(segments: Iterable[Mapping[str, Any]], name: str) -> str:
    # path 只依赖祖先链与自身名称
    parts = [sanitize_segment(str(seg["name"])) for seg in segments]
    parts.append(sanitize_segment(name))
    return "/" + "/".join(parts)


def replace_prefix(path: str, old_prefix: str, new_prefix: str) -> str | None:
    """把 ``path`` 开头的 ``old_prefix`` 替换为 ``new_prefix``；不匹配时返回 ``None``。"""
    if path == old_prefix:
        return new_prefix
    if path.startswith(old_prefix + "/"):
        return new_prefix + path[len(old_prefix):]
    return None


def split_extension(name: str) -> str:
    """返回小写扩展名（不含点）；隐藏文件如 ".env" 视为无扩展名。"""
    stem, dot, ext = (name or "").rpartition(".")
    if not dot or not stem or not ext:
        return ""
    return ext.lower()
