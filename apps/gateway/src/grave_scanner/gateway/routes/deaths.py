"""死亡事件查询路由

GET /api/deaths: 当前事件集合快照，按 timestamp 倒序。
"""

from fastapi import APIRouter, Depends
from grave_scanner.core.models import DeathEvent
from grave_scanner.core.scanner import ScanEngine

from ..deps import get_scan_engine

router = APIRouter()


@router.get("/api/deaths", response_model=list[DeathEvent])
def list_deaths(engine: ScanEngine = Depends(get_scan_engine)):
    """查询全部死亡事件，最新的在前"""
    events = engine.get_events()
    events.sort(key=lambda e: e.timestamp, reverse=True)
    return events
