"""扫描触发路由

POST /api/refresh: 增量扫描
POST /api/refresh/full: 全量重建
- 200: ScanResult {mode, added, total}
- 500: 本次扫描失败，持久状态保持上一次成功扫描的结果

同步处理函数由 FastAPI 线程池执行，扫描引擎的锁保证同一时刻只有一次扫描。
"""

from collections.abc import Callable

import structlog
from fastapi import APIRouter, Depends
from grave_scanner.core.exceptions import ScanError
from grave_scanner.core.models import ScanResult
from grave_scanner.core.scanner import ScanEngine
from starlette.responses import JSONResponse

from ..deps import get_scan_engine

log = structlog.get_logger()

router = APIRouter()


def _run_scan(scan: Callable[[], ScanResult]) -> ScanResult | JSONResponse:
    try:
        return scan()
    except ScanError as e:
        log.warning("refresh_request_failed", error=str(e))
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": "SCAN_FAILED",
                    "message": str(e),
                }
            },
        )


@router.post("/api/refresh", response_model=ScanResult)
def refresh(engine: ScanEngine = Depends(get_scan_engine)):
    """增量扫描源日志"""
    return _run_scan(engine.run_incremental_refresh)


@router.post("/api/refresh/full", response_model=ScanResult)
def refresh_full(engine: ScanEngine = Depends(get_scan_engine)):
    """从头重建事件存储"""
    return _run_scan(engine.run_full_refresh)
