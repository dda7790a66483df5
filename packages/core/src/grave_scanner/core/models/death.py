"""DeathEvent Domain Model

一条死亡事件对应源日志中的一行 "dies at (...). Bones placed"。
创建后不可变；只有全量重建会整体替换事件集合。
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


def local_now() -> datetime:
    """获取带本地时区偏移的当前时间"""
    return datetime.now().astimezone()


class DeathEvent(BaseModel):
    """DeathEvent 数据模型

    timestamp 为源日志中的本地墙上时间（附加本地 UTC 偏移，不做时区换算）。
    discovered_at 仅供参考，不参与排序。
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(description="事件时间戳（本地时间）")
    player: str = Field(min_length=1, pattern=r"^[^ ]+$", description="玩家名")
    x: int = Field(description="X 坐标")
    y: int = Field(description="Y 坐标")
    z: int = Field(description="Z 坐标")
    raw_line: str = Field(description="产生此事件的原始日志行")
    discovered_at: datetime = Field(
        default_factory=local_now,
        description="扫描发现此事件的时间",
    )

    @field_validator("timestamp", "discovered_at")
    @classmethod
    def _attach_local_tz(cls, value: datetime) -> datetime:
        # 旧文件中不带偏移的时间按本地时间解释，保证可与带偏移的时间比较
        if value.tzinfo is None:
            return value.astimezone()
        return value
