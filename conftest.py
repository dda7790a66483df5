"""全局 pytest 配置 -- 源日志 + 数据目录 + Store fixture"""

from collections.abc import Callable
from pathlib import Path

import pytest
from grave_scanner.core.store import StoreGroup, create_store_group


def _death_line(ts: str, player: str, x: int, y: int, z: int) -> str:
    return f"{ts}: ACTION[Server]: {player} dies at ({x},{y},{z}). Bones placed"


@pytest.fixture
def death_line() -> Callable[[str, str, int, int, int], str]:
    """构造一条合法的死亡日志行"""
    return _death_line


@pytest.fixture
def source_log(tmp_path: Path) -> Path:
    """空的临时源日志文件"""
    path = tmp_path / "debug.txt"
    path.write_text("", encoding="utf-8")
    return path


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """临时数据目录（尚未创建，由 store 工厂负责创建）"""
    return tmp_path / "data"


@pytest.fixture
def store_group(data_dir: Path) -> StoreGroup:
    """已加载的空 Store 实例组"""
    return create_store_group(
        data_dir / "scanner-state.json",
        data_dir / "deaths.json",
    )
