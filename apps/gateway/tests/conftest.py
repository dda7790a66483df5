"""apps/gateway 测试配置 -- FastAPI app + httpx AsyncClient fixture"""

from collections.abc import AsyncGenerator
from datetime import timedelta
from pathlib import Path

import pytest_asyncio
from grave_scanner.core.config import AppConfig
from grave_scanner.core.scanner import create_scan_engine
from httpx import ASGITransport, AsyncClient


@pytest_asyncio.fixture
async def app_config(source_log: Path, data_dir: Path) -> AppConfig:
    """测试配置：关闭定时扫描"""
    return AppConfig(
        log_path=source_log,
        data_dir=data_dir,
        scan_interval=timedelta(0),
    )


@pytest_asyncio.fixture
async def app(app_config: AppConfig):
    """创建测试用 FastAPI app 实例"""
    from grave_scanner.gateway.main import create_app

    application = create_app(app_config)

    # 手动初始化（绕过 lifespan）
    application.state.scan_engine = create_scan_engine(app_config)
    yield application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
