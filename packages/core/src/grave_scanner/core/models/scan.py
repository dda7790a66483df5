"""扫描状态与结果模型"""

from pydantic import BaseModel, Field

from .enums import ScanMode


class ScanOffset(BaseModel):
    """源日志中已扫描的字节数

    持久化格式：{"offset": <int>}。负值在加载时被钳制为 0。
    """

    offset: int = Field(default=0, strict=True, description="已扫描字节偏移")


class ScanResult(BaseModel):
    """一次扫描的结果"""

    mode: ScanMode = Field(description="扫描模式")
    added: int = Field(ge=0, description="本次新增事件数")
    total: int = Field(ge=0, description="扫描后事件总数")
