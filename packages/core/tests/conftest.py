"""packages/core 测试配置 -- 核心层 fixture"""

from pathlib import Path

import pytest
from grave_scanner.core.scanner import ScanEngine
from grave_scanner.core.store import StoreGroup


@pytest.fixture
def engine(source_log: Path, store_group: StoreGroup) -> ScanEngine:
    """指向临时源日志的扫描引擎"""
    return ScanEngine(source_log, store_group.offset_store, store_group.event_store)
