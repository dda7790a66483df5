"""FastAPI 应用主文件

app 创建 + lifespan 管理：加载配置、初始化扫描引擎、启停定时扫描、路由注册。
配置错误或持久化文件损坏在启动阶段即失败，进程不启动。
"""

import os
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import timedelta
from pathlib import Path

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from grave_scanner.core.config import AppConfig, load_config
from grave_scanner.core.exceptions import GraveScannerError
from grave_scanner.core.scanner import create_scan_engine

from .middleware.logging_config import setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .routes import deaths, health, refresh
from .services.periodic_scanner import PeriodicScanner

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化扫描引擎，关闭时停止定时扫描"""
    config: AppConfig = getattr(app.state, "config", None) or load_config()
    app.state.config = config

    engine = create_scan_engine(config)
    app.state.scan_engine = engine

    periodic: PeriodicScanner | None = None
    if config.scan_interval > timedelta(0):
        periodic = PeriodicScanner(engine, config.scan_interval)
        periodic.start()
    else:
        log.info("periodic_scanner_disabled")
    app.state.periodic_scanner = periodic

    yield

    if periodic is not None:
        await periodic.stop()


def create_app(config: AppConfig | None = None) -> FastAPI:
    """创建 FastAPI 应用实例

    Args:
        config: 预先加载的配置；为 None 时在 lifespan 中从环境变量加载
    """
    app = FastAPI(
        title="Luanti Grave Scanner",
        version="0.1.0",
        description="Luanti 死亡事件查询 API",
        lifespan=lifespan,
    )
    if config is not None:
        app.state.config = config

    app.add_middleware(LoggingMiddleware)

    setup_logging()

    app.include_router(deaths.router, tags=["deaths"])
    app.include_router(refresh.router, tags=["refresh"])
    app.include_router(health.router, tags=["health"])

    # 静态前端在所有 API 路由之后挂载，确保 API 优先匹配
    web_dir = config.web_dir if config is not None else os.environ.get("WEB_DIR")
    if web_dir and Path(web_dir).is_dir():
        app.mount("/", StaticFiles(directory=str(web_dir), html=True), name="web")

    return app


def run() -> None:
    """命令行入口：加载配置并启动 HTTP 服务"""
    setup_logging()
    try:
        config = load_config()
    except GraveScannerError as e:
        log.error("invalid_configuration", error=str(e))
        sys.exit(1)

    log.info("starting_server", addr=config.http_addr)
    uvicorn.run(
        create_app(config),
        host=config.http_host,
        port=config.http_port,
        log_config=None,
    )


# 默认 app 实例（uvicorn 入口）
app = create_app()
