"""枚举定义：约束重名处理策略与节点类型的可选值。"""

from enum import Enum


class DuplicateActionEnum(str, Enum):
    """同级重名时调用方可选的处理方式。"""

    REPLACE = "replace"
    KEEP_BOTH = "keepBoth"


class NodeTypeEnum(str, Enum):
    FOLDER = "folder"
    FILE = "file"
