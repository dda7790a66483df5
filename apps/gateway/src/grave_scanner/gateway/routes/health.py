"""健康检查路由

GET /healthz: 纯文本 ok（容器探针）
GET /health: Liveness 检查，永远返回 200
GET /ready: Readiness 检查，包含源日志可读、数据目录可写
"""

import os

from fastapi import APIRouter, Depends
from grave_scanner.core.scanner import ScanEngine
from starlette.responses import JSONResponse, PlainTextResponse

from ..deps import get_scan_engine

router = APIRouter()


@router.get("/healthz", response_class=PlainTextResponse)
async def healthz():
    """容器探针 -- 永远返回 ok"""
    return "ok"


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
def ready(engine: ScanEngine = Depends(get_scan_engine)):
    """Readiness 检查

    检查项：
    1. source_log: 源日志存在且可读
    2. data_dir: 数据目录存在且可写
    3. offset / events: 当前扫描进度
    """
    checks: dict = {}
    all_ok = True

    log_path = engine.log_path
    if log_path.is_file() and os.access(log_path, os.R_OK):
        checks["source_log"] = "ok"
    else:
        checks["source_log"] = "error: not readable"
        all_ok = False

    data_dir = engine.event_store.path.parent
    if data_dir.is_dir() and os.access(data_dir, os.W_OK):
        checks["data_dir"] = "ok"
    else:
        checks["data_dir"] = "error: not writable"
        all_ok = False

    checks["offset"] = engine.offset_store.current
    checks["events"] = engine.event_store.count()

    status_code = 200 if all_ok else 503
    status_text = "ready" if all_ok else "not_ready"

    return JSONResponse(
        status_code=status_code,
        content={
            "status": status_text,
            "checks": checks,
        },
    )
