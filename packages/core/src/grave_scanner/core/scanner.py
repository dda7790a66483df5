"""ScanEngine -- 源日志增量扫描引擎

两个入口（增量扫描 / 全量重建）共享同一把互斥锁，同一时刻只运行一次扫描。

单次扫描流程：
1. 以只读方式打开源日志
2. 读取文件大小；size < offset 视为截断/轮转，本次从 0 开始
3. seek 到起始位置，逐行读取到 EOF，交给行解析器
4. 新 offset 为读到 EOF 后的文件位置
5. 先持久化 offset，失败则不触碰事件存储
6. 增量模式追加事件，全量模式整体替换

已知限制：offset 写盘与事件写盘之间进程崩溃会丢失该批事件
（下次扫描从已推进的 offset 开始）。调换顺序则会在崩溃重试时产生重复事件，
这里保持 offset 优先。

截断检测只比较文件大小，同长度或更长的内容替换无法识别。
"""

import os
import threading
import time
from pathlib import Path

import structlog

from .config import AppConfig
from .exceptions import SourceLogError
from .models import DeathEvent, ScanMode, ScanResult, local_now
from .parser import parse_death_event
from .store import DeathEventStore, OffsetStore, create_store_group

log = structlog.get_logger()


class ScanEngine:
    """死亡事件扫描引擎"""

    def __init__(
        self,
        log_path: str | Path,
        offset_store: OffsetStore,
        event_store: DeathEventStore,
    ) -> None:
        self._log_path = Path(log_path)
        self._offset_store = offset_store
        self._event_store = event_store
        self._scan_lock = threading.Lock()

    @property
    def log_path(self) -> Path:
        return self._log_path

    @property
    def offset_store(self) -> OffsetStore:
        return self._offset_store

    @property
    def event_store(self) -> DeathEventStore:
        return self._event_store

    def get_events(self) -> list[DeathEvent]:
        """当前事件集合快照（按 timestamp 升序）"""
        return self._event_store.snapshot()

    def run_incremental_refresh(self) -> ScanResult:
        """从上次的 offset 继续扫描，新事件追加到事件存储

        Raises:
            ScanError: 源日志读取或持久化失败
        """
        return self._run(ScanMode.INCREMENTAL)

    def run_full_refresh(self) -> ScanResult:
        """从头扫描整个源日志，整体替换事件存储

        Raises:
            ScanError: 源日志读取或持久化失败
        """
        return self._run(ScanMode.FULL)

    def _run(self, mode: ScanMode) -> ScanResult:
        with self._scan_lock:
            start_time = time.monotonic()
            try:
                result, offset = self._scan(mode)
            except Exception as e:
                log.error("scan_failed", mode=mode.value, error=str(e))
                raise

            elapsed_ms = int((time.monotonic() - start_time) * 1000)
            log.info(
                "scan_completed",
                mode=result.mode.value,
                added=result.added,
                total=result.total,
                offset=offset,
                elapsed_ms=elapsed_ms,
            )
            return result

    def _scan(self, mode: ScanMode) -> tuple[ScanResult, int]:
        found, offset = self._read_new_events(mode)

        # offset 先于事件落盘
        self._offset_store.persist(offset)

        if mode is ScanMode.FULL:
            total = self._event_store.replace(found)
            return ScanResult(mode=mode, added=total, total=total), offset

        total, added = self._event_store.append(found)
        return ScanResult(mode=mode, added=added, total=total), offset

    def _read_new_events(self, mode: ScanMode) -> tuple[list[DeathEvent], int]:
        """读取起始位置之后的所有行，返回 (匹配事件, 新 offset)"""
        path = str(self._log_path)
        try:
            f = open(self._log_path, "rb")
        except OSError as e:
            raise SourceLogError(path, "open", e) from e

        with f:
            try:
                size = os.fstat(f.fileno()).st_size
            except OSError as e:
                raise SourceLogError(path, "stat", e) from e

            start = 0
            if mode is ScanMode.INCREMENTAL:
                stored = self._offset_store.current
                if size < stored:
                    log.warning(
                        "log_truncation_detected",
                        size=size,
                        offset=stored,
                    )
                else:
                    start = stored

            try:
                f.seek(start, os.SEEK_SET)
            except OSError as e:
                raise SourceLogError(path, "seek", e) from e

            now = local_now()
            found: list[DeathEvent] = []
            try:
                # 最后一行即使没有换行符也会被解析
                for raw in iter(f.readline, b""):
                    line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                    event = parse_death_event(line, now=now)
                    if event is not None:
                        found.append(event)
                offset = f.tell()
            except OSError as e:
                raise SourceLogError(path, "read", e) from e

        return found, offset


def create_scan_engine(config: AppConfig) -> ScanEngine:
    """按配置创建扫描引擎，加载已持久化的状态

    Raises:
        InitializationError: 数据目录无法创建或持久化文件损坏
    """
    store_group = create_store_group(config.state_path, config.events_path)
    log.info(
        "scan_engine_initialized",
        log_path=str(config.log_path),
        offset=store_group.offset_store.current,
        events=store_group.event_store.count(),
    )
    return ScanEngine(
        config.log_path,
        store_group.offset_store,
        store_group.event_store,
    )
