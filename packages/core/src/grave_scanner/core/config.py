"""配置模块 -- 从环境变量加载

环境变量:
    LOG_FILE_PATH: 源日志路径（必填）
    DATA_DIR: 数据目录（默认 ./data），存放 scanner-state.json 和 deaths.json
    HTTP_ADDR: 监听地址（默认 :8080）
    SCAN_INTERVAL: 定时扫描间隔，Go 风格时长（默认 5m，0 表示关闭定时扫描）
    WEB_DIR: 可选静态前端目录
"""

import os
import re
from datetime import timedelta
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from .exceptions import ConfigError

DEFAULT_SCAN_INTERVAL = "5m"
DEFAULT_HTTP_ADDR = ":8080"
DEFAULT_DATA_DIR = "./data"

STATE_FILE_NAME = "scanner-state.json"
EVENTS_FILE_NAME = "deaths.json"

_DURATION_UNITS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)"
_DURATION_RE = re.compile(rf"(?:{_DURATION_PART})+")
_DURATION_PART_RE = re.compile(_DURATION_PART)


def parse_duration(raw: str) -> timedelta:
    """解析 Go 风格时长字符串

    支持 "300ms"、"30s"、"5m"、"1.5h"、"1h30m"；单独的 "0" 表示零时长。

    Raises:
        ValueError: 格式非法
    """
    value = raw.strip()
    if value == "0":
        return timedelta(0)
    if not _DURATION_RE.fullmatch(value):
        raise ValueError(f"invalid duration {raw!r}")

    seconds = sum(
        float(amount) * _DURATION_UNITS[unit]
        for amount, unit in _DURATION_PART_RE.findall(value)
    )
    return timedelta(seconds=seconds)


class AppConfig(BaseModel):
    """应用配置"""

    log_path: Path = Field(description="源日志路径（只读）")
    data_dir: Path = Field(default=Path(DEFAULT_DATA_DIR), description="数据目录")
    http_addr: str = Field(default=DEFAULT_HTTP_ADDR, description="HTTP 监听地址 host:port")
    scan_interval: timedelta = Field(
        default_factory=lambda: parse_duration(DEFAULT_SCAN_INTERVAL),
        ge=timedelta(0),
        description="定时扫描间隔，0 表示关闭",
    )
    web_dir: Path | None = Field(default=None, description="静态前端目录")

    @property
    def state_path(self) -> Path:
        return self.data_dir / STATE_FILE_NAME

    @property
    def events_path(self) -> Path:
        return self.data_dir / EVENTS_FILE_NAME

    @property
    def http_host(self) -> str:
        host, _, _ = self.http_addr.rpartition(":")
        # "[::1]:8080" 形式的 IPv6 地址去掉方括号
        if host.startswith("[") and host.endswith("]"):
            host = host[1:-1]
        return host or "0.0.0.0"

    @property
    def http_port(self) -> int:
        _, _, port = self.http_addr.rpartition(":")
        return int(port)


def load_config() -> AppConfig:
    """从环境变量加载配置

    Returns:
        AppConfig 实例

    Raises:
        ConfigError: 缺少必填项或取值非法
    """
    log_path = os.environ.get("LOG_FILE_PATH", "")
    if not log_path:
        raise ConfigError("LOG_FILE_PATH is required")

    kwargs: dict = {
        "log_path": log_path,
        "data_dir": os.environ.get("DATA_DIR") or DEFAULT_DATA_DIR,
        "http_addr": os.environ.get("HTTP_ADDR") or DEFAULT_HTTP_ADDR,
    }

    if val := os.environ.get("SCAN_INTERVAL"):
        try:
            kwargs["scan_interval"] = parse_duration(val)
        except ValueError as e:
            raise ConfigError(f"SCAN_INTERVAL parse error: {e}") from e

    if val := os.environ.get("WEB_DIR"):
        kwargs["web_dir"] = val

    _, sep, port = kwargs["http_addr"].rpartition(":")
    if not sep or not port.isdigit():
        raise ConfigError(f"HTTP_ADDR must be host:port, got {kwargs['http_addr']!r}")

    try:
        return AppConfig(**kwargs)
    except ValidationError as e:
        raise ConfigError(f"invalid configuration: {e}") from e
