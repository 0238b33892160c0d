# slave_runtime/services/lifecycle_service.py
import logging
import threading

from docker.errors import NotFound

from slave_runtime.models.action import ActionRequest
from slave_runtime.services.progress import ImageProgress
from slave_runtime.services.registry import RunningImageRegistry
from slave_runtime.status import SlaveAction, WorkloadState
from slave_runtime.utils.docker_manager import build_container_options

log = logging.getLogger(__name__)


class LifecycleManager:
    """Starts and stops workload containers and owns the running-image registry.

    A single re-entrant lock serializes start, stop and stop_all, so a
    reconnect teardown never interleaves with an in-flight start.
    """

    def __init__(self, runtime, identity, unix_host: bool, service_port: int = 1883,
                 registry: RunningImageRegistry | None = None, progress_factory=ImageProgress):
        self._runtime = runtime
        self._identity = identity
        self._unix_host = unix_host
        self._service_port = service_port
        self._registry = registry if registry is not None else RunningImageRegistry()
        self._progress_factory = progress_factory
        self._lock = threading.RLock()

    def execute(self, request: ActionRequest) -> bool:
        if request.action == SlaveAction.START:
            return self.start(request)
        if request.action == SlaveAction.STOP:
            return self.stop(request)
        log.debug("Ignoring request %s without a known action", request.workload_id)
        return False

    def start(self, request: ActionRequest) -> bool:
        workload_id = request.workload_id
        image = request.image_full_name

        with self._lock:
            if workload_id in self._registry:
                log.warning("Image id %s with image %s already running, ignoring", workload_id, image)
                return False

            log.info("Start image %s for workload %s", image, workload_id)
            try:
                self._runtime.pull_image(request.image_name, request.tag, request.image_source,
                                         progress=self._progress_factory(image))
                options = build_container_options(request, self._identity, self._unix_host, self._service_port)
                container_id = self._runtime.create_container(**options)
            except Exception:
                log.exception("Error starting image %s for workload %s", image, workload_id)
                return False

            try:
                self._runtime.start_container(container_id)
            except Exception:
                log.exception("Error starting container %s for workload %s", container_id, workload_id)
                self._discard(container_id)
                return False

            self._registry.add(workload_id, container_id)
            log.info("Workload %s running in container %s", workload_id, container_id)
            return True

    def stop(self, request: ActionRequest) -> bool:
        workload_id = request.workload_id
        image = request.image_full_name

        with self._lock:
            container_id = self._registry.get(workload_id)
            if container_id is None:
                log.error("Could not stop image, image %s not found", image)
                return False

            log.info("Stop image %s for workload %s", image, workload_id)
            try:
                self._runtime.stop_container(container_id)
            except NotFound:
                log.warning("Container %s for workload %s is already gone", container_id, workload_id)
            except Exception:
                log.exception("Error stopping container %s for workload %s, keeping it registered",
                              container_id, workload_id)
                return False

            try:
                self._runtime.delete_image(image)
            except Exception:
                log.exception("Could not delete image %s", image)

            self._registry.remove(workload_id)
            return True

    def stop_all(self) -> list[str]:
        """Stop every registered container and clear the registry."""
        with self._lock:
            entries = self._registry.snapshot()
            for workload_id, container_id in entries.items():
                try:
                    self._runtime.stop_container(container_id)
                except Exception:
                    log.exception("Error stopping container %s for workload %s", container_id, workload_id)
            self._registry.clear()
            if entries:
                log.info("Stopped %d workload(s)", len(entries))
            return list(entries)

    def state_of(self, workload_id: str) -> WorkloadState:
        with self._lock:
            if workload_id in self._registry:
                return WorkloadState.RUNNING
            return WorkloadState.ABSENT

    def running(self) -> dict[str, str]:
        with self._lock:
            return self._registry.snapshot()

    def _discard(self, container_id: str):
        try:
            self._runtime.remove_container(container_id)
        except Exception:
            log.exception("Could not remove container %s", container_id)
