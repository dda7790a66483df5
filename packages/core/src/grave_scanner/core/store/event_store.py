"""DeathEventStore -- 死亡事件集合的内存视图 + JSON 文件持久化

持久化格式：按 timestamp 升序的 JSON 数组，缩进 2 空格。
每次变更后内存集合按 timestamp 升序排序（相同时间戳不保证稳定）。

并发：读写锁保护内存集合。写者只在更新集合并复制写盘数据期间持有独占锁，
真正的磁盘写入在锁外进行，慢 I/O 不阻塞并发读者。
写盘本身不加锁：调用方（ScanEngine）保证同一时刻只有一个写者。
"""

from collections.abc import Sequence
from pathlib import Path

import structlog
from pydantic import TypeAdapter, ValidationError

from ..exceptions import EventPersistError, StateCorruptedError
from ..models import DeathEvent
from .atomic import write_text_atomic
from .locks import ReadWriteLock

log = structlog.get_logger()

_EVENT_LIST = TypeAdapter(list[DeathEvent])


def _sort_key(event: DeathEvent):
    return event.timestamp


class DeathEventStore:
    """死亡事件存储"""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = ReadWriteLock()
        self._events: list[DeathEvent] = []

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[DeathEvent]:
        """从磁盘加载事件集合并设为当前值

        - 文件不存在：空集合
        - 文件为空或只有空白：空集合
        - 否则解析为 JSON 数组并按 timestamp 升序排序

        Raises:
            StateCorruptedError: 文件存在但无法解析
        """
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raw = ""
        except (OSError, UnicodeDecodeError) as e:
            raise StateCorruptedError(str(self._path), e) from e

        if not raw.strip():
            events: list[DeathEvent] = []
        else:
            try:
                events = _EVENT_LIST.validate_json(raw)
            except ValidationError as e:
                raise StateCorruptedError(str(self._path), e) from e
            events.sort(key=_sort_key)

        with self._lock.write():
            self._events = events
        log.info("events_loaded", path=str(self._path), count=len(events))
        return list(events)

    def snapshot(self) -> list[DeathEvent]:
        """时间点快照，可安全交给并发读者"""
        with self._lock.read():
            return list(self._events)

    def count(self) -> int:
        """当前事件总数"""
        with self._lock.read():
            return len(self._events)

    def append(self, batch: Sequence[DeathEvent]) -> tuple[int, int]:
        """追加一批事件并持久化完整集合

        空批次只读取总数，不写盘。

        Returns:
            (total, added) 元组

        Raises:
            EventPersistError: 写盘失败（内存集合已更新）
        """
        if not batch:
            return self.count(), 0

        with self._lock.write():
            self._events.extend(batch)
            self._events.sort(key=_sort_key)
            payload = list(self._events)

        self._persist(payload)
        return len(payload), len(batch)

    def replace(self, events: Sequence[DeathEvent]) -> int:
        """用新集合整体替换当前集合并持久化

        Returns:
            替换后的事件总数

        Raises:
            EventPersistError: 写盘失败（内存集合已替换）
        """
        adopted = sorted(events, key=_sort_key)
        with self._lock.write():
            self._events = adopted
            payload = list(adopted)

        self._persist(payload)
        return len(payload)

    def _persist(self, events: list[DeathEvent]) -> None:
        """将已复制的集合写入磁盘（在锁外调用）"""
        try:
            content = _EVENT_LIST.dump_json(events, indent=2).decode("utf-8")
            write_text_atomic(self._path, content)
        except OSError as e:
            raise EventPersistError(str(self._path), e) from e
