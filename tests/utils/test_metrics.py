from swarmupdate.utils import metrics


def test_fetch_families_share_one_registry() -> None:
    families = metrics.fetch_metrics()

    families.candidates.labels(status="joined").inc()
    families.duration.labels(status="completed").observe(42.0)

    registry = metrics.get_registry()
    assert registry.get_sample_value("swarm_update_candidates_total", {"status": "joined"}) == 1.0
    assert (
        registry.get_sample_value("swarm_update_duration_seconds_count", {"status": "completed"})
        == 1.0
    )
    assert (
        registry.get_sample_value(
            "swarm_update_duration_seconds_bucket", {"status": "completed", "le": "60.0"}
        )
        == 1.0
    )


def test_reset_registry_starts_from_zero() -> None:
    metrics.fetch_metrics().outcomes.labels(status="failed", reason="too_big").inc()

    metrics.reset_registry()

    registry = metrics.get_registry()
    assert (
        registry.get_sample_value(
            "swarm_update_outcomes_total", {"status": "failed", "reason": "too_big"}
        )
        is None
    )
