"""Grave Scanner Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .death import DeathEvent, local_now
from .enums import ScanMode
from .scan import ScanOffset, ScanResult

__all__ = [
    # 枚举
    "ScanMode",
    # 事件
    "DeathEvent",
    "local_now",
    # 扫描
    "ScanOffset",
    "ScanResult",
]
