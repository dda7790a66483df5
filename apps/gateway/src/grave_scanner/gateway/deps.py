"""依赖注入模块 -- 通过 FastAPI Depends 注入 ScanEngine 实例

ScanEngine 实例通过 app.state 管理，在 lifespan 中初始化。
"""

from fastapi import Request
from grave_scanner.core.scanner import ScanEngine


def get_scan_engine(request: Request) -> ScanEngine:
    """从 app.state 获取 ScanEngine 实例"""
    return request.app.state.scan_engine
