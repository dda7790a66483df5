"""集成测试共享 fixture"""

from datetime import timedelta
from pathlib import Path

import pytest
from grave_scanner.core.config import AppConfig


@pytest.fixture
def integration_config(source_log: Path, data_dir: Path) -> AppConfig:
    """集成测试配置：关闭定时扫描，由测试显式触发"""
    return AppConfig(log_path=source_log, data_dir=data_dir, scan_interval=timedelta(0))
