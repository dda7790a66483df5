"""OffsetStore -- 已扫描字节偏移的持久化

持久化格式：{"offset": <非负整数>}，缩进 JSON。
文件缺失视为首次运行（offset=0）；文件存在但损坏则初始化失败。
内存值由独立的互斥锁保护，与事件集合的读写锁互不阻塞。
"""

import threading
from pathlib import Path

import structlog
from pydantic import ValidationError

from ..exceptions import OffsetPersistError, StateCorruptedError
from ..models import ScanOffset
from .atomic import write_text_atomic

log = structlog.get_logger()


class OffsetStore:
    """扫描偏移存储"""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._offset = 0

    @property
    def path(self) -> Path:
        return self._path

    @property
    def current(self) -> int:
        """当前已持久化的 offset"""
        with self._lock:
            return self._offset

    def load(self) -> ScanOffset:
        """从磁盘加载 offset 并设为当前值

        Returns:
            ScanOffset 实例（负值已钳制为 0）

        Raises:
            StateCorruptedError: 文件存在但无法解析
        """
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            state = ScanOffset()
        except (OSError, UnicodeDecodeError) as e:
            raise StateCorruptedError(str(self._path), e) from e
        else:
            try:
                state = ScanOffset.model_validate_json(raw)
            except ValidationError as e:
                raise StateCorruptedError(str(self._path), e) from e

        if state.offset < 0:
            log.warning(
                "negative_offset_clamped",
                path=str(self._path),
                offset=state.offset,
            )
            state = ScanOffset(offset=0)

        with self._lock:
            self._offset = state.offset
        return state

    def persist(self, offset: int) -> None:
        """写入新的 offset

        写入成功后才更新内存值；失败时内存值保持不变。

        Raises:
            OffsetPersistError: 写入失败
        """
        state = ScanOffset(offset=max(offset, 0))
        try:
            write_text_atomic(self._path, state.model_dump_json(indent=2))
        except OSError as e:
            raise OffsetPersistError(str(self._path), e) from e

        with self._lock:
            self._offset = state.offset
