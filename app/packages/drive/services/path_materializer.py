"""路径物化：根据父目录的物化路径计算节点自身的 path 与面包屑 path_segments。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from app.packages.drive.crud.fs_node import SegmentsPatch
from app.packages.drive.models.fs_node import FsNode
from app.packages.drive.utils.path_utils import join_path, sanitize_segment


@dataclass(frozen=True)
class MaterializedPath:
    path: str
    segments: list[dict[str, Any]]


def segment_of(node: FsNode, name: Optional[str] = None) -> dict[str, Any]:
    return {"id": node.id, "name": name if name is not None else node.name}


class PathMaterializer:
    def materialize(self, name: str, parent: Optional[FsNode]) -> MaterializedPath:
        if parent is None:
            return MaterializedPath(path="/" + sanitize_segment(name), segments=[])
        segments = [dict(seg) for seg in (parent.path_segments or [])]
        segments.append(segment_of(parent))
        return MaterializedPath(path=join_path(parent.path, name), segments=segments)

    def descendants_patch(self, node: FsNode, *, old_depth: int) -> SegmentsPatch:
        """节点自身的 path/path_segments/name 更新完毕后，生成其后代的祖先链改写规则。

        后代的祖先链中，前 ``old_depth`` 项（旧祖先链 + 节点自身）需要替换为
        节点当前的祖先链 + 节点自身（新名称）。
        """
        head = [dict(seg) for seg in (node.path_segments or [])]
        head.append(segment_of(node))
        return SegmentsPatch(strip=old_depth, head=head)


path_materializer = PathMaterializer()
