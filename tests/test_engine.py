"""Tests for the sync loop."""

import os
from unittest.mock import Mock

import pytest

from cloudsync.config import FailurePolicy
from cloudsync.exceptions import ListingError
from cloudsync.local_files import list_files
from cloudsync.storage.base import StorageError
from cloudsync.sync.actions import DeleteLocal, DeleteRemote, Download, Upload
from cloudsync.sync.engine import LoopState, SyncEngine

from conftest import CLIENT_ID, OTHER_CLIENT_ID, T0, InterruptedStream


@pytest.fixture
def engine(local_root, backend):
    return SyncEngine(local_root, backend, CLIENT_ID, interval=5, sleep=Mock())


def kinds(report):
    return [(type(a), a.path) for a in report.actions]


class TestRunCycle:
    def test_first_cycle_merges_both_sides(self, engine, backend, local_root, write_local):
        write_local("local.txt", b"L")
        backend.seed("remote.txt", b"R", writer_id=OTHER_CLIENT_ID)

        report = engine.run_cycle()

        assert report.ok
        assert kinds(report) == [(Upload, "local.txt"), (Download, "remote.txt")]
        assert backend.content("local.txt") == b"L"
        with open(os.path.join(local_root, "remote.txt"), "rb") as f:
            assert f.read() == b"R"

    def test_second_cycle_is_quiet_after_convergence(self, engine, backend, write_local):
        write_local("local.txt", b"L")
        backend.seed("remote.txt", b"R")

        engine.run_cycle()
        report = engine.run_cycle()

        assert report.actions == []

    def test_own_upload_then_local_delete_is_not_resurrected(
        self, engine, backend, write_local
    ):
        path = write_local("a.txt", b"mine")
        engine.run_cycle()
        assert backend.get_meta("a.txt").writer_id == CLIENT_ID

        os.remove(path)
        report = engine.run_cycle()

        assert kinds(report) == [(DeleteRemote, "a.txt")]
        assert backend.list_all() == {}
        assert engine.run_cycle().actions == []

    def test_remote_delete_propagates_locally(self, engine, backend, local_root, write_local):
        write_local("a.txt", b"shared")
        backend.seed("a.txt", b"shared", last_modified=T0)
        engine.run_cycle()

        backend.delete("a.txt")
        report = engine.run_cycle()

        assert kinds(report) == [(DeleteLocal, "a.txt")]
        assert list_files(local_root) == []

    def test_remote_edit_is_downloaded(self, engine, backend, local_root, write_local):
        write_local("a.txt", b"v1", mtime=T0)
        backend.seed("a.txt", b"v1", last_modified=T0)
        engine.run_cycle()

        backend.seed("a.txt", b"v2", writer_id=OTHER_CLIENT_ID)
        report = engine.run_cycle()

        assert kinds(report) == [(Download, "a.txt")]
        with open(os.path.join(local_root, "a.txt"), "rb") as f:
            assert f.read() == b"v2"

    def test_snapshot_replaced_after_cycle(self, engine, backend, write_local):
        write_local("a.txt", b"A")
        assert engine.last_snapshot.is_empty

        engine.run_cycle()

        assert set(engine.last_snapshot.local) == {"a.txt"}

    def test_state_is_running_during_cycle(self, local_root, backend):
        seen = []

        def lister(root):
            seen.append(engine.state)
            return []

        engine = SyncEngine(local_root, backend, CLIENT_ID, lister=lister)
        engine.run_cycle()

        assert seen == [LoopState.RUNNING]
        assert engine.state == LoopState.IDLE


class TestFailures:
    def test_remote_listing_failure_keeps_prior_snapshot(self, local_root):
        backend = Mock()
        backend.list_all.side_effect = StorageError("unreachable")
        engine = SyncEngine(local_root, backend, CLIENT_ID)
        prior = engine.last_snapshot

        report = engine.run_cycle()

        assert isinstance(report.error, ListingError)
        assert report.error.side == "remote"
        assert report.actions == []
        assert engine.last_snapshot is prior
        assert engine.state == LoopState.IDLE

    def test_local_listing_failure_aborts_cycle(self, tmp_path, backend):
        engine = SyncEngine(str(tmp_path / "missing"), backend, CLIENT_ID)

        report = engine.run_cycle()

        assert isinstance(report.error, ListingError)
        assert report.error.side == "local"
        assert not report.ok

    def test_action_failure_still_replaces_snapshot(self, local_root, backend, write_local):
        write_local("a.txt", b"A")
        write_local("b.txt", b"B")
        failing = Mock(wraps=backend)
        failing.put.side_effect = StorageError("write refused")
        engine = SyncEngine(local_root, failing, CLIENT_ID, policy=FailurePolicy.ABORT)

        report = engine.run_cycle()

        assert not report.ok
        assert report.result.aborted
        assert [str(a) for a in report.result.not_attempted] == ["upload:b.txt"]
        assert set(engine.last_snapshot.local) == {"a.txt", "b.txt"}

    def test_failed_upload_is_retried_after_restart(self, local_root, backend, write_local):
        # A failed action whose path stays unchanged is only retried once the
        # baseline is rebuilt, e.g. after a restart.
        write_local("a.txt", b"A")
        failing = Mock(wraps=backend)
        failing.put.side_effect = StorageError("write refused")
        SyncEngine(local_root, failing, CLIENT_ID).run_cycle()

        restarted = SyncEngine(local_root, backend, CLIENT_ID)
        report = restarted.run_cycle()

        assert kinds(report) == [(Upload, "a.txt")]
        assert backend.content("a.txt") == b"A"

    def test_interrupted_download_does_not_upload_partial_file(
        self, local_root, backend, write_local
    ):
        write_local("a.txt", b"OLD", mtime=T0)
        backend.seed("a.txt", b"OLD", last_modified=T0)
        flaky = Mock(wraps=backend)
        engine = SyncEngine(local_root, flaky, CLIENT_ID)
        engine.run_cycle()

        backend.seed("a.txt", b"GOOD REMOTE CONTENT", writer_id=OTHER_CLIENT_ID)
        flaky.get.side_effect = lambda path: (
            backend.get_meta(path),
            InterruptedStream(b"GOOD REMOTE CONTENT", fail_after=4),
        )
        report = engine.run_cycle()
        assert kinds(report) == [(Download, "a.txt")]
        assert not report.ok

        flaky.get.side_effect = None
        report = engine.run_cycle()

        assert not any(isinstance(a, Upload) for a in report.actions)
        assert backend.content("a.txt") == b"GOOD REMOTE CONTENT"
        with open(os.path.join(local_root, "a.txt"), "rb") as f:
            assert f.read() == b"OLD"


class TestRunForever:
    def test_sleeps_between_cycles(self, engine):
        engine.run_forever(max_cycles=3)

        assert engine.cycles == 3
        assert engine.sleep.call_count == 2
        engine.sleep.assert_called_with(5)

    def test_survives_failing_cycles(self, local_root):
        backend = Mock()
        backend.list_all.side_effect = StorageError("unreachable")
        sleep = Mock()
        engine = SyncEngine(local_root, backend, CLIENT_ID, sleep=sleep)

        engine.run_forever(max_cycles=2)

        assert engine.cycles == 2
        assert engine.last_snapshot.is_empty

    def test_survives_unexpected_errors(self, engine):
        engine.plan = Mock(side_effect=RuntimeError("bug"))

        engine.run_forever(max_cycles=2)

        assert engine.cycles == 2
        assert engine.state == LoopState.IDLE
