"""ScanEngine 测试

测试内容：
1. 增量扫描：幂等、offset 单调、只处理新字节
2. 截断/轮转检测
3. 全量重建等价于从头解析
4. 源日志不被修改
5. 失败路径：源日志缺失、offset 写盘失败、事件写盘失败
6. 并发刷新不产生重复事件
7. 重启后从持久化 offset 继续
"""

import json
import threading
from pathlib import Path

import pytest
from grave_scanner.core.config import AppConfig
from grave_scanner.core.exceptions import (
    EventPersistError,
    OffsetPersistError,
    SourceLogError,
    StateCorruptedError,
)
from grave_scanner.core.models import ScanMode
from grave_scanner.core.parser import iter_death_events
from grave_scanner.core.scanner import ScanEngine, create_scan_engine
from grave_scanner.core.store import event_store as event_store_module
from grave_scanner.core.store import offset_store as offset_store_module

NOISE = "2025-12-05 15:00:00: ACTION[Server]: Mordor joins game\n"


def append(path: Path, *lines: str) -> None:
    with open(path, "a", encoding="utf-8") as f:
        for line in lines:
            f.write(line + "\n")


class TestIncrementalRefresh:
    def test_first_scan_finds_events(self, engine: ScanEngine, source_log: Path, death_line):
        append(source_log, death_line("2025-12-05 14:59:55", "Mordor", 23, -29035, -22))

        result = engine.run_incremental_refresh()
        assert result.mode == ScanMode.INCREMENTAL
        assert (result.added, result.total) == (1, 1)
        assert engine.offset_store.current == source_log.stat().st_size

    def test_idempotent_without_new_bytes(self, engine: ScanEngine, source_log: Path, death_line):
        """没有新字节时第二次扫描 added=0，total 不变"""
        append(source_log, death_line("2025-12-05 14:59:55", "Mordor", 23, -29035, -22))
        engine.run_incremental_refresh()

        result = engine.run_incremental_refresh()
        assert (result.added, result.total) == (0, 1)

    def test_only_new_bytes_processed(self, engine: ScanEngine, source_log: Path, death_line):
        append(source_log, death_line("2025-12-05 14:59:55", "Mordor", 23, -29035, -22))
        engine.run_incremental_refresh()

        append(source_log, death_line("2025-12-06 08:00:00", "Alice", 100, 20, -5))
        result = engine.run_incremental_refresh()

        assert (result.added, result.total) == (1, 2)
        assert [e.player for e in engine.get_events()] == ["Mordor", "Alice"]

    def test_offset_monotonic(self, engine: ScanEngine, source_log: Path, death_line):
        """没有截断时 offset 单调不减"""
        offsets = []
        for i in range(4):
            append(source_log, death_line(f"2025-12-0{i + 1} 10:00:00", f"P{i}", i, i, i), NOISE)
            engine.run_incremental_refresh()
            offsets.append(engine.offset_store.current)
        engine.run_incremental_refresh()
        offsets.append(engine.offset_store.current)

        assert offsets == sorted(offsets)
        assert offsets[-1] == source_log.stat().st_size

    def test_non_matching_lines_skipped(self, engine: ScanEngine, source_log: Path, death_line):
        append(
            source_log,
            "garbage",
            death_line("2025-12-05 14:59:55", "Mordor", 1, 2, 3),
            "2025-99-99 99:99:99: ACTION[Server]: X dies at (1,2,3). Bones placed",
        )
        result = engine.run_incremental_refresh()
        assert (result.added, result.total) == (1, 1)

    def test_crlf_and_unterminated_last_line(self, engine: ScanEngine, source_log: Path, death_line):
        """CRLF 行尾被去除；末尾没有换行符的行也会被解析"""
        content = (
            death_line("2025-12-05 10:00:00", "Crlf", 1, 1, 1) + "\r\n"
            + death_line("2025-12-05 11:00:00", "Tail", 2, 2, 2)
        )
        source_log.write_bytes(content.encode("utf-8"))

        result = engine.run_incremental_refresh()
        assert result.added == 2
        events = engine.get_events()
        assert events[0].raw_line.endswith("Bones placed")
        assert engine.offset_store.current == len(content.encode("utf-8"))

    def test_events_sorted_by_timestamp_not_discovery(
        self, engine: ScanEngine, source_log: Path, death_line
    ):
        append(source_log, death_line("2025-12-07 00:00:00", "Late", 0, 0, 0))
        engine.run_incremental_refresh()
        append(source_log, death_line("2025-12-01 00:00:00", "Early", 0, 0, 0))
        engine.run_incremental_refresh()

        assert [e.player for e in engine.get_events()] == ["Early", "Late"]

    def test_oversized_coordinate_line_skipped(
        self, engine: ScanEngine, source_log: Path, death_line
    ):
        """坐标位数过长的行被跳过，后续事件照常入库且 offset 推进"""
        append(
            source_log,
            death_line("2025-12-05 14:59:55", "Mordor", "9" * 5000, 0, 0),
            death_line("2025-12-06 09:30:00", "Alice", 100, 20, -5),
        )

        result = engine.run_incremental_refresh()
        assert (result.added, result.total) == (1, 1)
        assert [e.player for e in engine.get_events()] == ["Alice"]
        assert engine.offset_store.current == source_log.stat().st_size

        assert engine.run_incremental_refresh().added == 0

    def test_invalid_utf8_does_not_abort(self, engine: ScanEngine, source_log: Path, death_line):
        with open(source_log, "ab") as f:
            f.write(b"\xff\xfe broken bytes\n")
            f.write((death_line("2025-12-05 10:00:00", "Ok", 1, 2, 3) + "\n").encode())

        result = engine.run_incremental_refresh()
        assert result.added == 1


class TestTruncation:
    def test_truncation_rescans_from_zero(self, engine: ScanEngine, source_log: Path, death_line):
        """文件变短后从 0 开始扫描且不报错"""
        append(
            source_log,
            death_line("2025-12-05 10:00:00", "A", 1, 1, 1),
            NOISE.strip(),
            NOISE.strip(),
        )
        engine.run_incremental_refresh()
        old_offset = engine.offset_store.current

        source_log.write_text(death_line("2025-12-06 10:00:00", "B", 2, 2, 2) + "\n", encoding="utf-8")
        assert source_log.stat().st_size < old_offset

        result = engine.run_incremental_refresh()
        assert (result.added, result.total) == (1, 2)
        assert engine.offset_store.current == source_log.stat().st_size

    def test_truncated_to_empty(self, engine: ScanEngine, source_log: Path, death_line):
        append(source_log, death_line("2025-12-05 10:00:00", "A", 1, 1, 1))
        engine.run_incremental_refresh()

        source_log.write_text("", encoding="utf-8")
        result = engine.run_incremental_refresh()
        assert (result.added, result.total) == (0, 1)
        assert engine.offset_store.current == 0

    def test_failed_scan_after_truncation_keeps_offset(
        self, engine: ScanEngine, source_log: Path, death_line, monkeypatch
    ):
        """截断只影响本次起点，扫描失败时持久 offset 不变"""
        append(source_log, death_line("2025-12-05 10:00:00", "A", 1, 1, 1), NOISE.strip())
        engine.run_incremental_refresh()
        old_offset = engine.offset_store.current

        source_log.write_text("short\n", encoding="utf-8")

        def boom(path, content):
            raise OSError("disk full")

        monkeypatch.setattr(offset_store_module, "write_text_atomic", boom)
        with pytest.raises(OffsetPersistError):
            engine.run_incremental_refresh()

        assert engine.offset_store.current == old_offset
        state_file = engine.offset_store.path
        assert json.loads(state_file.read_text(encoding="utf-8")) == {"offset": old_offset}


class TestFullRefresh:
    def test_full_refresh_equals_fresh_parse(self, engine: ScanEngine, source_log: Path, death_line):
        """全量重建后事件集合等于从头解析整个源日志的结果"""
        append(
            source_log,
            death_line("2025-12-07 00:00:00", "Bob", 1, 2, 3),
            NOISE.strip(),
            death_line("2025-12-05 00:00:00", "Mordor", 23, -29035, -22),
        )
        engine.run_incremental_refresh()
        engine.run_incremental_refresh()

        result = engine.run_full_refresh()
        assert result.mode == ScanMode.FULL
        assert (result.added, result.total) == (2, 2)

        with open(source_log, encoding="utf-8") as f:
            expected = sorted(iter_death_events(f), key=lambda e: e.timestamp)
        actual = engine.get_events()
        assert [(e.player, e.timestamp, e.x, e.y, e.z, e.raw_line) for e in actual] == [
            (e.player, e.timestamp, e.x, e.y, e.z, e.raw_line) for e in expected
        ]

    def test_full_refresh_drops_vanished_events(
        self, engine: ScanEngine, source_log: Path, death_line
    ):
        append(source_log, death_line("2025-12-05 00:00:00", "Gone", 0, 0, 0))
        engine.run_incremental_refresh()

        source_log.write_text(death_line("2025-12-06 00:00:00", "Kept", 0, 0, 0) + "\n", encoding="utf-8")
        result = engine.run_full_refresh()

        assert (result.added, result.total) == (1, 1)
        assert [e.player for e in engine.get_events()] == ["Kept"]

    def test_full_refresh_sets_offset_to_end(self, engine: ScanEngine, source_log: Path, death_line):
        append(source_log, death_line("2025-12-05 00:00:00", "A", 0, 0, 0))
        engine.run_full_refresh()
        assert engine.offset_store.current == source_log.stat().st_size

        result = engine.run_incremental_refresh()
        assert (result.added, result.total) == (0, 1)

    def test_full_refresh_of_empty_log(self, engine: ScanEngine):
        result = engine.run_full_refresh()
        assert (result.added, result.total) == (0, 0)


class TestSourceLogImmutability:
    def test_refreshes_never_modify_source(self, engine: ScanEngine, source_log: Path, death_line):
        append(
            source_log,
            death_line("2025-12-05 00:00:00", "A", 0, 0, 0),
            NOISE.strip(),
        )
        before = source_log.read_bytes()
        mtime = source_log.stat().st_mtime_ns

        engine.run_incremental_refresh()
        engine.run_full_refresh()
        engine.run_incremental_refresh()

        assert source_log.read_bytes() == before
        assert source_log.stat().st_mtime_ns == mtime


class TestFailures:
    def test_missing_source_log(self, store_group, tmp_path: Path):
        engine = ScanEngine(tmp_path / "nope.txt", store_group.offset_store, store_group.event_store)
        with pytest.raises(SourceLogError) as exc_info:
            engine.run_incremental_refresh()
        assert exc_info.value.action == "open"
        assert exc_info.value.recoverable is True
        assert engine.offset_store.current == 0

    def test_scan_recovers_after_source_appears(self, store_group, tmp_path: Path, death_line):
        log_path = tmp_path / "later.txt"
        engine = ScanEngine(log_path, store_group.offset_store, store_group.event_store)
        with pytest.raises(SourceLogError):
            engine.run_full_refresh()

        append(log_path, death_line("2025-12-05 00:00:00", "A", 0, 0, 0))
        assert engine.run_full_refresh().total == 1

    def test_offset_persist_failure_leaves_events_untouched(
        self, engine: ScanEngine, source_log: Path, death_line, monkeypatch
    ):
        """offset 写盘失败时不触碰事件存储"""
        append(source_log, death_line("2025-12-05 00:00:00", "A", 0, 0, 0))

        def boom(path, content):
            raise OSError("read-only filesystem")

        monkeypatch.setattr(offset_store_module, "write_text_atomic", boom)
        with pytest.raises(OffsetPersistError):
            engine.run_incremental_refresh()

        assert engine.offset_store.current == 0
        assert engine.get_events() == []
        assert not engine.event_store.path.exists()

        monkeypatch.undo()
        result = engine.run_incremental_refresh()
        assert (result.added, result.total) == (1, 1)

    def test_event_persist_failure_after_offset_advanced(
        self, engine: ScanEngine, source_log: Path, death_line, monkeypatch
    ):
        """事件写盘失败：offset 已推进（已知的先 offset 后事件顺序）"""
        append(source_log, death_line("2025-12-05 00:00:00", "A", 0, 0, 0))

        def boom(path, content):
            raise OSError("disk full")

        monkeypatch.setattr(event_store_module, "write_text_atomic", boom)
        with pytest.raises(EventPersistError):
            engine.run_incremental_refresh()

        assert engine.offset_store.current == source_log.stat().st_size
        assert engine.event_store.count() == 1


class TestConcurrency:
    def test_concurrent_refreshes_do_not_duplicate(
        self, engine: ScanEngine, source_log: Path, death_line
    ):
        """并发触发的扫描串行执行，每行最多处理一次"""
        for i in range(50):
            append(source_log, death_line(f"2025-12-05 10:{i:02d}:00", f"P{i}", i, -i, 0))

        results = []
        errors = []
        start = threading.Barrier(8, timeout=5)

        def worker():
            try:
                start.wait()
                results.append(engine.run_incremental_refresh())
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert errors == []
        assert sum(r.added for r in results) == 50
        assert engine.event_store.count() == 50
        assert max(r.total for r in results) == 50

    def test_mixed_full_and_incremental(self, engine: ScanEngine, source_log: Path, death_line):
        for i in range(10):
            append(source_log, death_line(f"2025-12-05 10:{i:02d}:00", f"P{i}", i, 0, 0))

        threads = [
            threading.Thread(target=engine.run_incremental_refresh),
            threading.Thread(target=engine.run_full_refresh),
            threading.Thread(target=engine.run_incremental_refresh),
            threading.Thread(target=engine.run_full_refresh),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert engine.event_store.count() == 10


class TestRestart:
    def test_resume_from_persisted_offset(self, source_log: Path, data_dir: Path, death_line):
        config = AppConfig(log_path=source_log, data_dir=data_dir)
        append(source_log, death_line("2025-12-05 00:00:00", "A", 0, 0, 0))
        first = create_scan_engine(config)
        first.run_incremental_refresh()

        append(source_log, death_line("2025-12-06 00:00:00", "B", 0, 0, 0))
        second = create_scan_engine(config)
        assert second.offset_store.current == first.offset_store.current
        assert second.event_store.count() == 1

        result = second.run_incremental_refresh()
        assert (result.added, result.total) == (1, 2)

    def test_corrupt_state_fails_init(self, source_log: Path, data_dir: Path):
        data_dir.mkdir(parents=True)
        (data_dir / "scanner-state.json").write_text("{broken", encoding="utf-8")

        with pytest.raises(StateCorruptedError):
            create_scan_engine(AppConfig(log_path=source_log, data_dir=data_dir))

    def test_corrupt_events_fails_init(self, source_log: Path, data_dir: Path):
        data_dir.mkdir(parents=True)
        (data_dir / "deaths.json").write_text("[{]", encoding="utf-8")

        with pytest.raises(StateCorruptedError):
            create_scan_engine(AppConfig(log_path=source_log, data_dir=data_dir))

    def test_data_dir_created(self, source_log: Path, data_dir: Path):
        assert not data_dir.exists()
        create_scan_engine(AppConfig(log_path=source_log, data_dir=data_dir))
        assert data_dir.is_dir()
