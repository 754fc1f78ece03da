"""常量定义：集中维护 HTTP 状态码、令牌类型等固定取值。"""

HTTP_STATUS_OK = 200
HTTP_STATUS_BAD_REQUEST = 400

ACCESS_TOKEN_TYPE = "bearer"

# 保留名称：不允许作为文件或文件夹名
RESERVED_NAMES = frozenset({".", ".."})

# 路径片段中需要剔除的不安全字符
PATH_UNSAFE_CHARS = '/\\:*?"<>|'

FOLDER_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"
