import logging
import threading
import time
from uuid import uuid4

import pytest
from docker.errors import DockerException, NotFound

from slave_runtime.services.lifecycle_service import LifecycleManager
from slave_runtime.services.registry import RunningImageRegistry
from slave_runtime.status import WorkloadState


@pytest.fixture
def manager(runtime, identity):
    return LifecycleManager(runtime, identity, unix_host=True)


def test_start_creates_and_registers(manager, runtime, make_request):
    wid = uuid4()
    req = make_request(workload_id=wid)

    assert manager.start(req) is True

    create_calls = [c for c in runtime.calls if c[0] == "create_container"]
    assert len(create_calls) == 1
    options = create_calls[0][2]
    assert options["image"] == "demo/app:1.0"
    assert options["ports"] == {"1883/tcp": 1883}
    assert options["network_mode"] == "host"
    assert "AUTOMATICA_SLAVE_MASTER=master.local" in options["environment"]
    assert "AUTOMATICA_SLAVE_USER=agent-1" in options["environment"]
    assert "AUTOMATICA_SLAVE_PASSWORD=s3cret" in options["environment"]
    assert f"AUTOMATICA_NODE_ID={wid}" in options["environment"]

    assert runtime.names() == ["pull_image", "create_container", "start_container"]
    assert manager.running() == {str(wid): "cid-1"}
    assert manager.state_of(str(wid)) == WorkloadState.RUNNING


def test_start_unix_host_is_privileged_with_mounts(manager, runtime, make_request):
    manager.start(make_request())
    options = runtime.calls[1][2]
    assert options["privileged"] is True
    assert [(m["Source"], m["Target"], m["Type"]) for m in options["mounts"]] == [
        ("/dev", "/dev", "bind"),
        ("/tmp", "/tmp", "bind"),
    ]


def test_start_windows_host_has_no_privileges_or_mounts(runtime, identity, make_request):
    manager = LifecycleManager(runtime, identity, unix_host=False)
    manager.start(make_request())
    options = runtime.calls[1][2]
    assert "privileged" not in options
    assert options["mounts"] == []


def test_start_passes_image_source(manager, runtime, make_request):
    manager.start(make_request(source="http://images.local/app.tar"))
    assert runtime.calls[0] == ("pull_image", ("demo/app", "1.0", "http://images.local/app.tar"), {})


def test_duplicate_start_is_noop(manager, runtime, make_request, caplog):
    wid = uuid4()
    manager.start(make_request(workload_id=wid))
    runtime.calls.clear()

    with caplog.at_level(logging.WARNING):
        assert manager.start(make_request(workload_id=wid)) is False

    assert runtime.calls == []
    assert len(manager.running()) == 1
    assert any("already running" in r.message for r in caplog.records)


def test_pull_failure_leaves_registry_empty(manager, runtime, make_request, caplog):
    runtime.fail["pull_image"] = DockerException("no such image")
    with caplog.at_level(logging.ERROR):
        assert manager.start(make_request()) is False
    assert "create_container" not in runtime.names()
    assert manager.running() == {}
    assert caplog.records


def test_start_failure_removes_created_container(manager, runtime, make_request):
    runtime.fail["start_container"] = DockerException("port in use")
    wid = uuid4()

    assert manager.start(make_request(workload_id=wid)) is False
    assert runtime.names() == ["pull_image", "create_container", "start_container", "remove_container"]
    assert manager.state_of(str(wid)) == WorkloadState.ABSENT


def test_stop_unknown_id_is_noop(manager, runtime, make_request, caplog):
    with caplog.at_level(logging.ERROR):
        assert manager.stop(make_request(action="Stop")) is False
    assert runtime.calls == []
    assert any("not found" in r.message for r in caplog.records)


def test_stop_removes_even_if_image_delete_fails(manager, runtime, make_request):
    wid = uuid4()
    manager.start(make_request(workload_id=wid))
    runtime.calls.clear()
    runtime.fail["delete_image"] = DockerException("image in use")

    assert manager.stop(make_request(action="Stop", workload_id=wid)) is True
    assert runtime.names() == ["stop_container", "delete_image"]
    assert runtime.calls[1][1] == ("demo/app:1.0",)
    assert manager.running() == {}


def test_stop_failure_keeps_entry(manager, runtime, make_request):
    wid = uuid4()
    manager.start(make_request(workload_id=wid))
    runtime.fail["stop_container"] = DockerException("daemon gone")

    assert manager.stop(make_request(action="Stop", workload_id=wid)) is False
    assert manager.state_of(str(wid)) == WorkloadState.RUNNING


def test_stop_of_vanished_container_unregisters(manager, runtime, make_request, caplog):
    wid = uuid4()
    manager.start(make_request(workload_id=wid))
    runtime.calls.clear()
    runtime.fail["stop_container"] = NotFound("No such container: cid-1")

    with caplog.at_level(logging.WARNING):
        assert manager.stop(make_request(action="Stop", workload_id=wid)) is True

    assert runtime.names() == ["stop_container", "delete_image"]
    assert manager.state_of(str(wid)) == WorkloadState.ABSENT
    assert any("already gone" in r.message for r in caplog.records)

    # the id can be started again
    del runtime.fail["stop_container"]
    assert manager.start(make_request(workload_id=wid)) is True


def test_stop_all_stops_everything_and_clears(manager, runtime, make_request):
    ids = [uuid4() for _ in range(3)]
    for wid in ids:
        manager.start(make_request(workload_id=wid))
    runtime.calls.clear()
    runtime.fail["stop_container"] = DockerException("first one fails")

    stopped = manager.stop_all()

    assert sorted(stopped) == sorted(str(w) for w in ids)
    assert runtime.names() == ["stop_container"] * 3
    assert manager.running() == {}


def test_execute_routes_and_ignores_unknown(manager, runtime, make_request):
    wid = uuid4()
    assert manager.execute(make_request(action="Restart", workload_id=wid)) is False
    assert runtime.calls == []
    assert manager.execute(make_request(action="Start", workload_id=wid)) is True
    assert manager.execute(make_request(action="Stop", workload_id=wid)) is True
    assert manager.running() == {}


def test_scenario_start_start_stop_stop(manager, runtime, make_request, caplog):
    wid = uuid4()
    with caplog.at_level(logging.INFO):
        manager.execute(make_request(action="Start", workload_id=wid))
        manager.execute(make_request(action="Start", workload_id=wid))
    assert runtime.names().count("create_container") == 1
    assert len([r for r in caplog.records if r.levelno == logging.WARNING]) == 1
    assert len(manager.running()) == 1

    runtime.calls.clear()
    manager.execute(make_request(action="Stop", workload_id=wid))
    assert runtime.names() == ["stop_container", "delete_image"]
    assert manager.running() == {}

    runtime.calls.clear()
    caplog.clear()
    with caplog.at_level(logging.ERROR):
        manager.execute(make_request(action="Stop", workload_id=wid))
    assert runtime.calls == []
    assert [r.levelno for r in caplog.records] == [logging.ERROR]


def test_concurrent_starts_same_id_create_once(runtime, identity, make_request):
    real_pull = runtime.pull_image

    def slow_pull(*args, **kwargs):
        time.sleep(0.02)
        return real_pull(*args, **kwargs)

    runtime.pull_image = slow_pull
    manager = LifecycleManager(runtime, identity, unix_host=True)
    wid = uuid4()

    threads = [threading.Thread(target=manager.start, args=(make_request(workload_id=wid),)) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert runtime.names().count("create_container") == 1
    assert len(manager.running()) == 1


def test_stop_all_waits_for_inflight_start(runtime, identity, make_request):
    started = threading.Event()
    release = threading.Event()
    real_pull = runtime.pull_image

    def blocking_pull(*args, **kwargs):
        started.set()
        release.wait(2)
        return real_pull(*args, **kwargs)

    runtime.pull_image = blocking_pull
    manager = LifecycleManager(runtime, identity, unix_host=True)

    starter = threading.Thread(target=manager.start, args=(make_request(),))
    starter.start()
    assert started.wait(2)

    result = {}
    teardown = threading.Thread(target=lambda: result.setdefault("stopped", manager.stop_all()))
    teardown.start()
    time.sleep(0.05)
    assert teardown.is_alive()

    release.set()
    starter.join(2)
    teardown.join(2)

    # the start committed before teardown ran, so teardown stopped it
    assert len(result["stopped"]) == 1
    assert manager.running() == {}
    assert runtime.names()[-1] == "stop_container"


def test_registry_rejects_duplicates():
    registry = RunningImageRegistry()
    registry.add("a", "cid-1")
    with pytest.raises(KeyError):
        registry.add("a", "cid-2")
    assert registry.get("a") == "cid-1"
    assert len(registry) == 1
    assert registry.remove("a") == "cid-1"
    assert registry.remove("a") is None
