"""枚举定义

ScanMode 区分增量扫描与全量重建两种入口。
"""

from enum import StrEnum


class ScanMode(StrEnum):
    """扫描模式"""

    INCREMENTAL = "incremental"
    FULL = "full"
