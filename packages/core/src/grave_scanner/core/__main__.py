"""CLI 入口模块 -- python -m grave_scanner.core <command>

支持的命令：
  scan               执行一次增量扫描
  rescan             从头全量重建事件存储
  list [--limit N]   按时间倒序列出已存储事件
  parse <file>       只解析文件并打印匹配行（不读写存储）
"""

import argparse
import json
import sys
from pathlib import Path

from .config import load_config
from .exceptions import GraveScannerError
from .log_config import setup_cli_logging
from .parser import iter_death_events


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m grave_scanner.core",
        description="Luanti 死亡事件扫描工具",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("scan", help="执行一次增量扫描")
    sub.add_parser("rescan", help="从头全量重建事件存储")

    list_cmd = sub.add_parser("list", help="按时间倒序列出已存储事件")
    list_cmd.add_argument("--limit", type=int, default=None, help="最多显示条数")

    parse_cmd = sub.add_parser("parse", help="只解析文件并打印匹配行")
    parse_cmd.add_argument("file", type=Path, help="日志文件路径")
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI 主入口"""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    setup_cli_logging()
    try:
        if args.command == "parse":
            return cmd_parse(args.file)
        if args.command == "list":
            return cmd_list(args.limit)
        return cmd_scan(full=args.command == "rescan")
    except GraveScannerError as e:
        print(f"错误: {e}", file=sys.stderr)
        return 1


def cmd_scan(full: bool) -> int:
    """执行一次扫描并打印结果"""
    from .scanner import create_scan_engine

    engine = create_scan_engine(load_config())
    if full:
        result = engine.run_full_refresh()
    else:
        result = engine.run_incremental_refresh()
    print(result.model_dump_json())
    return 0


def cmd_list(limit: int | None) -> int:
    """打印已存储事件，最新的在前"""
    from .store import create_store_group

    config = load_config()
    store_group = create_store_group(config.state_path, config.events_path)
    events = store_group.event_store.snapshot()
    events.reverse()
    if limit is not None:
        events = events[:limit]

    if not events:
        print("没有已记录的死亡事件")
        return 0

    for event in events:
        ts = event.timestamp.strftime("%Y-%m-%d %H:%M:%S")
        print(f"{ts}  {event.player:<20}  ({event.x},{event.y},{event.z})")
    return 0


def cmd_parse(path: Path) -> int:
    """解析文件中的死亡事件（dry-run）"""
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            for event in iter_death_events(f):
                print(json.dumps(event.model_dump(mode="json"), ensure_ascii=False))
    except OSError as e:
        print(f"无法读取文件: {path} -- {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
