"""Grave Scanner Core Store -- JSON 文件持久化实现

offset 与事件集合分别存放在两个独立文件中，各自可独立恢复。
提供工厂函数加载两者组成的 Store 实例组。
"""

from pathlib import Path

from ..exceptions import InitializationError
from .event_store import DeathEventStore
from .locks import ReadWriteLock
from .offset_store import OffsetStore


class StoreGroup:
    """Store 实例组 -- offset 存储 + 事件存储"""

    def __init__(self, offset_store: OffsetStore, event_store: DeathEventStore) -> None:
        self.offset_store = offset_store
        self.event_store = event_store


def create_store_group(state_path: str | Path, events_path: str | Path) -> StoreGroup:
    """创建并加载 Store 实例组

    Args:
        state_path: offset 文件路径
        events_path: 事件文件路径

    Returns:
        已加载的 StoreGroup 实例

    Raises:
        InitializationError: 数据目录无法创建
        StateCorruptedError: 已存在的持久化文件损坏
    """
    state_file = Path(state_path)
    events_file = Path(events_path)

    for directory in {state_file.parent, events_file.parent}:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise InitializationError(f"无法创建数据目录: {directory} -- {e}") from e

    offset_store = OffsetStore(state_file)
    offset_store.load()

    event_store = DeathEventStore(events_file)
    event_store.load()

    return StoreGroup(offset_store=offset_store, event_store=event_store)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "OffsetStore",
    "DeathEventStore",
    "ReadWriteLock",
]
