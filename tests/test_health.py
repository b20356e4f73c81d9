import pytest

from print_simple.health import HealthReporter


@pytest.mark.asyncio
async def test_health_reporter_snapshot():
    reporter = HealthReporter()

    await reporter.update("status-poller", True)
    await reporter.update("file-watcher", False, "watch lost: /srv/gcode")

    snapshot = await reporter.snapshot()

    assert snapshot["status"] == "degraded"
    component_list = snapshot.get("components", [])
    assert isinstance(component_list, list)
    components = {item["name"]: item for item in component_list}
    assert components["status-poller"]["healthy"] is True
    assert components["file-watcher"]["healthy"] is False
    assert components["file-watcher"]["detail"] == "watch lost: /srv/gcode"


@pytest.mark.asyncio
async def test_health_reporter_service_state_affects_status():
    reporter = HealthReporter()

    await reporter.update("status-poller", True)
    await reporter.set_service_state("starting", healthy=False)

    snapshot = await reporter.snapshot()

    assert snapshot["status"] == "degraded"
    assert snapshot["unhealthy"] == ["service"]
    service = snapshot.get("service")
    assert service is not None
    assert service["state"] == "starting"
    assert service["healthy"] is False
    assert [item["name"] for item in snapshot["components"]] == ["status-poller"]


@pytest.mark.asyncio
async def test_health_reporter_ok_when_all_healthy():
    reporter = HealthReporter()

    await reporter.update("status-poller", True)
    await reporter.set_service_state("running", healthy=True)

    snapshot = await reporter.snapshot()

    assert snapshot["status"] == "ok"
    assert snapshot["unhealthy"] == []
