from pak_invalidator.archive.murmur3 import murmur3_32, path_hash
from pak_invalidator.archive.quickbms import (
    ListedFile,
    PakTool,
    QuickBmsTool,
    ToolResult,
    ToolStatus,
    parse_list_output,
)

__all__ = [
    "ListedFile",
    "PakTool",
    "QuickBmsTool",
    "ToolResult",
    "ToolStatus",
    "murmur3_32",
    "parse_list_output",
    "path_hash",
]
