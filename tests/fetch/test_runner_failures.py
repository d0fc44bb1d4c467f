import logging
import threading

from swarmupdate.errors import FailureReason
from swarmupdate.fetch.models import FetchState
from swarmupdate.utils import metrics
from tests.fakes import (
    HASH_A,
    FakeClock,
    FakeSwarm,
    FakeSwarmManager,
    build_runner,
    magnet,
    single_file,
)


def _write_artifacts(data_dir, swarm) -> None:
    (data_dir / swarm.name).write_bytes(b"d8:announce")
    (data_dir / swarm.base_name).write_bytes(b"partial")


def test_metadata_timeout_discards_pending_swarm_without_deleting_files(loop, data_dir) -> None:
    swarm = FakeSwarm()
    _write_artifacts(data_dir, swarm)
    clock = FakeClock()
    manager = FakeSwarmManager(data_dir, swarms=[swarm])
    runner, coordinator = build_runner(
        manager, loop=loop, candidates=[magnet(HASH_A)], clock=clock
    )
    runner.start()

    clock.advance(60)
    runner.supervisor.fire()

    assert runner.failure_reason == FailureReason.METADATA_TIMEOUT.value
    assert [event.message for event in coordinator.of_kind("task_failed")] == ["Metainfo timeout"]
    assert manager.call_names() == ["delete_magnet"]
    assert (data_dir / swarm.name).exists()
    assert (data_dir / swarm.base_name).exists()


def test_completion_timeout_stops_swarm_and_deletes_both_files(loop, data_dir) -> None:
    swarm = FakeSwarm(metadata=single_file())
    _write_artifacts(data_dir, swarm)
    clock = FakeClock()
    manager = FakeSwarmManager(data_dir, swarms=[swarm])
    runner, coordinator = build_runner(
        manager, loop=loop, candidates=[magnet(HASH_A)], clock=clock
    )
    runner.start()
    runner.got_metadata(swarm)

    clock.advance(60)
    runner.supervisor.fire()
    assert runner.is_running() is True

    clock.advance(540)
    runner.supervisor.fire()

    assert runner.failure_reason == FailureReason.COMPLETION_TIMEOUT.value
    assert manager.calls[:2] == [("got_metadata", swarm.name), ("stop_torrent", True)]
    assert ("remove_torrent", swarm.name) in manager.calls
    assert "delete_magnet" not in manager.call_names()
    assert not (data_dir / swarm.name).exists()
    assert not (data_dir / swarm.base_name).exists()
    assert coordinator.kinds().count("task_failed") == 1


def test_stop_reported_during_cleanup_does_not_fail_twice(loop, data_dir) -> None:
    swarm = FakeSwarm(metadata=single_file())
    manager = FakeSwarmManager(data_dir, swarms=[swarm])
    runner, coordinator = build_runner(manager, loop=loop, candidates=[magnet(HASH_A)])
    runner.start()
    runner.got_metadata(swarm)

    runner.fatal(swarm, "tracker error")

    assert coordinator.kinds().count("task_failed") == 1
    assert manager.call_names().count("stop_torrent") == 1
    assert manager.call_names().count("update_status") == 1


def test_missing_files_are_tolerated_during_cleanup(loop, data_dir) -> None:
    swarm = FakeSwarm(metadata=single_file())
    manager = FakeSwarmManager(data_dir, swarms=[swarm])
    runner, coordinator = build_runner(manager, loop=loop, candidates=[magnet(HASH_A)])
    runner.start()
    runner.got_metadata(swarm)

    runner.timed_out(FailureReason.COMPLETION_TIMEOUT)

    assert coordinator.kinds()[-1] == "task_failed"
    assert runner.state is FetchState.FAILED


def test_cleanup_never_leaves_the_data_directory(loop, data_dir, tmp_path) -> None:
    outside = tmp_path / "keep.su3"
    outside.write_bytes(b"keep")
    swarm = FakeSwarm(name="../keep.su3", base_name=str(outside), metadata=single_file())
    manager = FakeSwarmManager(data_dir, swarms=[swarm])
    runner, coordinator = build_runner(manager, loop=loop, candidates=[magnet(HASH_A)])
    runner.start()
    runner.got_metadata(swarm)

    runner.fatal(swarm, "bad names")

    assert outside.exists()
    assert coordinator.kinds().count("task_failed") == 1


def test_cleanup_errors_still_notify_coordinator(loop, data_dir, caplog) -> None:
    class ExplodingManager(FakeSwarmManager):
        def delete_magnet(self, swarm):
            raise RuntimeError("engine gone")

    swarm = FakeSwarm()
    manager = ExplodingManager(data_dir, swarms=[swarm])
    runner, coordinator = build_runner(manager, loop=loop, candidates=[magnet(HASH_A)])
    runner.start()

    with caplog.at_level(logging.ERROR, logger="swarmupdate.fetch.runner"):
        runner.timed_out(FailureReason.METADATA_TIMEOUT)

    assert coordinator.kinds()[-1] == "task_failed"
    assert any("Failed to discard pending swarm" in r.getMessage() for r in caplog.records)


def test_terminal_failure_is_idempotent(loop, data_dir) -> None:
    swarm = FakeSwarm(metadata=single_file())
    manager = FakeSwarmManager(data_dir, swarms=[swarm])
    runner, coordinator = build_runner(manager, loop=loop, candidates=[magnet(HASH_A)])
    runner.start()
    runner.got_metadata(swarm)

    runner.timed_out(FailureReason.COMPLETION_TIMEOUT)
    runner.timed_out(FailureReason.METADATA_TIMEOUT)
    swarm.stopped = True
    runner.update_status(swarm)
    runner.fatal(swarm, "late")
    runner.supervisor.fire()

    assert [event.message for event in coordinator.of_kind("task_failed")] == ["Complete timeout"]
    assert manager.call_names().count("stop_torrent") == 1
    assert runner.failure_reason == "Complete timeout"


def test_concurrent_triggers_collapse_into_one_failure(loop, data_dir) -> None:
    swarm = FakeSwarm(metadata=single_file())
    manager = FakeSwarmManager(data_dir, swarms=[swarm])
    runner, coordinator = build_runner(manager, loop=loop, candidates=[magnet(HASH_A)])
    runner.start()
    runner.got_metadata(swarm)
    barrier = threading.Barrier(8)

    def trigger(index: int) -> None:
        barrier.wait()
        runner.fatal(swarm, f"worker {index}")

    threads = [threading.Thread(target=trigger, args=(index,)) for index in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(coordinator.of_kind("task_failed")) == 1
    assert manager.call_names().count("stop_torrent") == 1
    assert manager.call_names().count("fatal") == 8


def test_completion_after_failure_is_not_reported(loop, data_dir) -> None:
    swarm = FakeSwarm(metadata=single_file())
    manager = FakeSwarmManager(data_dir, swarms=[swarm])
    runner, coordinator = build_runner(manager, loop=loop, candidates=[magnet(HASH_A)])
    runner.start()
    runner.got_metadata(swarm)
    runner.timed_out(FailureReason.COMPLETION_TIMEOUT)

    runner.transfer_complete(swarm)

    assert coordinator.of_kind("complete") == []
    assert runner.is_complete() is False
    assert manager.call_names()[-1] == "torrent_complete"


def test_shutdown_suppresses_later_failures(loop, data_dir) -> None:
    swarm = FakeSwarm()
    manager = FakeSwarmManager(data_dir, swarms=[swarm])
    runner, coordinator = build_runner(manager, loop=loop, candidates=[magnet(HASH_A)])
    runner.start()
    coordinator.clear()

    runner.shutdown()
    runner.supervisor.fire()

    assert coordinator.events == ()
    assert manager.calls == []


def test_outcomes_are_counted(loop, data_dir) -> None:
    manager = FakeSwarmManager(data_dir)
    runner, _ = build_runner(manager, loop=loop, candidates=["bogus"])

    runner.start()

    registry = metrics.get_registry()
    assert (
        registry.get_sample_value(
            "swarm_update_outcomes_total",
            {"status": "failed", "reason": "no_valid_locations"},
        )
        == 1.0
    )
    assert (
        registry.get_sample_value("swarm_update_candidates_total", {"status": "invalid"}) == 1.0
    )


def test_failure_outcome_is_logged(loop, data_dir, caplog) -> None:
    manager = FakeSwarmManager(data_dir)
    runner, _ = build_runner(manager, loop=loop, candidates=[])

    with caplog.at_level(logging.INFO, logger="swarmupdate.fetch.runner"):
        runner.start()

    outcome = next(
        record
        for record in caplog.records
        if getattr(record, "event", "") == "update_fetch.outcome"
    )
    assert outcome.levelno == logging.ERROR
    assert outcome.status == "failed"
    assert outcome.reason == "No valid URLs"
