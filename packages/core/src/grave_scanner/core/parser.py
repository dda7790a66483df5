"""死亡事件行解析器

只支持一种固定行格式：

    2025-12-05 14:59:55: ACTION[Server]: Mordor dies at (23,-29035,-22). Bones placed

不匹配的行返回 None（不是错误），扫描继续。
"""

import re
from collections.abc import Iterable, Iterator
from datetime import datetime

from .models import DeathEvent, local_now

DEATH_LINE_PATTERN = re.compile(
    r"^([0-9]{4}-[0-9]{2}-[0-9]{2} [0-9]{2}:[0-9]{2}:[0-9]{2}): "
    r"ACTION\[Server\]: ([^ ]+) dies at "
    r"\((-?[0-9]+),(-?[0-9]+),(-?[0-9]+)\)\. Bones placed$"
)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_death_event(line: str, now: datetime | None = None) -> DeathEvent | None:
    """解析单行日志

    Args:
        line: 已去除行尾换行符的日志行
        now: discovered_at 时间戳（默认当前本地时间）

    Returns:
        DeathEvent；行不匹配或时间戳非法时返回 None
    """
    match = DEATH_LINE_PATTERN.fullmatch(line)
    if match is None:
        return None

    try:
        # 本地墙上时间，只附加本地偏移，不换算
        timestamp = datetime.strptime(match.group(1), TIMESTAMP_FORMAT).astimezone()
        # 超过 int 字符串转换位数上限的坐标同样视为不匹配
        x, y, z = (int(match.group(i)) for i in (3, 4, 5))
    except (ValueError, OverflowError):
        return None

    return DeathEvent(
        timestamp=timestamp,
        player=match.group(2),
        x=x,
        y=y,
        z=z,
        raw_line=line,
        discovered_at=now or local_now(),
    )


def iter_death_events(lines: Iterable[str]) -> Iterator[DeathEvent]:
    """逐行解析，只产出匹配的事件"""
    for line in lines:
        event = parse_death_event(line.rstrip("\r\n"))
        if event is not None:
            yield event
