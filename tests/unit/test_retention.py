"""
Unit tests for retention enforcement (dumpkeeper/backup/retention.py).

Tests artifact pruning, log trimming and RetentionSweeper.
"""

import os
import time

import pytest

from dumpkeeper.backup.retention import RetentionSweeper, prune_archives, trim_log

NOW = 1705312800.0  # 2024-01-15 10:00:00 UTC


def _make_file(path, age_minutes, content=b'data'):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    mtime = NOW - age_minutes * 60
    os.utime(path, (mtime, mtime))
    return path


class TestPruneArchives:

    def test_old_archives_deleted_recent_kept(self, tmp_path):
        old = _make_file(tmp_path / 'db01-a' / 'Monday' / 'shop.2024_01_08.dump.sql.gz', 120)
        recent = _make_file(tmp_path / 'db01-a' / 'Tuesday' / 'shop.2024_01_09.dump.sql.gz', 30)

        deleted = prune_archives(str(tmp_path), 60, now=NOW)

        assert deleted == [str(old)]
        assert not old.exists()
        assert recent.exists()

    def test_archive_exactly_at_threshold_is_kept(self, tmp_path):
        boundary = _make_file(tmp_path / 'shop.dump.sql.gz', 60)

        deleted = prune_archives(str(tmp_path), 60, now=NOW)

        assert deleted == []
        assert boundary.exists()

    def test_archive_just_past_threshold_is_deleted(self, tmp_path):
        path = tmp_path / 'shop.dump.sql.gz'
        _make_file(path, 60)
        mtime = NOW - 60 * 60 - 1
        os.utime(path, (mtime, mtime))

        assert prune_archives(str(tmp_path), 60, now=NOW) == [str(path)]

    def test_only_compressed_dumps_are_touched(self, tmp_path):
        notes = _make_file(tmp_path / 'notes.txt', 10000)
        plain = _make_file(tmp_path / 'shop.sql', 10000)
        upper = _make_file(tmp_path / 'SHOP.SQL.GZ', 10000)

        deleted = prune_archives(str(tmp_path), 60, now=NOW)

        assert deleted == [str(upper)]
        assert notes.exists()
        assert plain.exists()

    def test_missing_dumps_dir(self, tmp_path):
        assert prune_archives(str(tmp_path / 'absent'), 60, now=NOW) == []

    def test_zero_window_deletes_anything_older_than_now(self, tmp_path):
        path = _make_file(tmp_path / 'a.sql.gz', 1)

        assert prune_archives(str(tmp_path), 0, now=NOW) == [str(path)]

    def test_defaults_to_current_time(self, tmp_path):
        path = tmp_path / 'a.sql.gz'
        path.write_bytes(b'x')
        old = time.time() - 3 * 3600
        os.utime(path, (old, old))

        assert prune_archives(str(tmp_path), 60) == [str(path)]


class TestTrimLog:

    def test_keeps_exact_suffix(self, tmp_path):
        log = tmp_path / 'main.log'
        lines = [f"[Mon Jan 15 10:00:{i:02d} 2024] line {i}\n" for i in range(12)]
        log.write_text(''.join(lines))

        assert trim_log(str(log), 5) is True

        assert log.read_text() == ''.join(lines[-5:])

    def test_short_log_untouched(self, tmp_path):
        log = tmp_path / 'main.log'
        log.write_text('one\ntwo\n')
        inode = log.stat().st_ino

        assert trim_log(str(log), 5) is False
        assert log.read_text() == 'one\ntwo\n'
        assert log.stat().st_ino == inode

    def test_log_at_limit_untouched(self, tmp_path):
        log = tmp_path / 'main.log'
        log.write_text('1\n2\n3\n')

        assert trim_log(str(log), 3) is False

    def test_missing_log(self, tmp_path):
        assert trim_log(str(tmp_path / 'absent.log'), 5) is False

    def test_file_is_replaced_not_truncated_in_place(self, tmp_path):
        log = tmp_path / 'main.log'
        log.write_text(''.join(f"{i}\n" for i in range(10)))
        inode = log.stat().st_ino

        trim_log(str(log), 2)

        assert log.stat().st_ino != inode
        assert log.read_text() == '8\n9\n'
        assert [p.name for p in tmp_path.iterdir()] == ['main.log']

    def test_permissions_preserved(self, tmp_path):
        log = tmp_path / 'main.log'
        log.write_text('a\nb\nc\n')
        os.chmod(log, 0o640)

        trim_log(str(log), 1)

        assert (log.stat().st_mode & 0o777) == 0o640


class TestRetentionSweeper:

    def test_sweep_prunes_and_trims(self, tmp_path):
        dumps = tmp_path / 'dumps'
        old = _make_file(dumps / 'h-1' / 'Monday' / 'a.dump.sql.gz', 500)
        main_log = tmp_path / 'main.log'
        error_log = tmp_path / 'error.log'
        main_log.write_text(''.join(f"{i}\n" for i in range(8)))
        error_log.write_text('only\n')

        sweeper = RetentionSweeper(str(dumps), 60, [str(main_log), str(error_log)], preserve_lines=3)
        summary = sweeper.sweep(now=NOW)

        assert summary['deleted'] == [str(old)]
        assert summary['trimmed'] == [str(main_log)]
        assert main_log.read_text() == '5\n6\n7\n'
        assert error_log.read_text() == 'only\n'
