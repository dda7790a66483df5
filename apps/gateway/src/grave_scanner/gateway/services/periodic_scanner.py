"""PeriodicScanner -- 可选的定时增量扫描

启动时立即扫描一次，之后每隔 interval 扫描一次。
每次扫描都经 asyncio.to_thread 调用 ScanEngine，与 HTTP 触发的扫描共享同一把锁。
扫描失败（包括非 ScanError 的异常）只记录日志，不终止循环。
"""

import asyncio
from datetime import timedelta

import structlog
from grave_scanner.core.exceptions import ScanError
from grave_scanner.core.scanner import ScanEngine

log = structlog.get_logger()


class PeriodicScanner:
    """定时扫描器 -- 基于 asyncio.Task"""

    def __init__(self, engine: ScanEngine, interval: timedelta) -> None:
        self._engine = engine
        self._interval = interval.total_seconds()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """启动后台扫描任务"""
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="periodic-scanner")
        log.info("periodic_scanner_started", interval_s=self._interval)

    async def stop(self) -> None:
        """取消后台扫描任务并等待其退出"""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        log.info("periodic_scanner_stopped")

    async def scan_once(self) -> None:
        """执行一次增量扫描，失败只记录日志"""
        try:
            await asyncio.to_thread(self._engine.run_incremental_refresh)
        except ScanError as e:
            await log.awarning("periodic_scan_failed", error=str(e))
        except Exception as e:
            # CancelledError 不是 Exception，继续向上传播
            await log.aexception("periodic_scan_failed", exc_info=e)

    async def _loop(self) -> None:
        await self.scan_once()
        while True:
            await asyncio.sleep(self._interval)
            await self.scan_once()
