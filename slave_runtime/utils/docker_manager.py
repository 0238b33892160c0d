# slave_runtime/utils/docker_manager.py
import json
import logging
import sys
from dataclasses import dataclass

import docker
from docker.errors import DockerException
from docker.types import Mount

log = logging.getLogger(__name__)

UNIX_SOCKET_URL = "unix://var/run/docker.sock"
WINDOWS_PIPE_URL = "npipe:////./pipe/docker_engine"

# Environment contract of the workload images.
ENV_MASTER = "AUTOMATICA_SLAVE_MASTER"
ENV_USER = "AUTOMATICA_SLAVE_USER"
ENV_PASSWORD = "AUTOMATICA_SLAVE_PASSWORD"
ENV_NODE_ID = "AUTOMATICA_NODE_ID"

HOST_BIND_PATHS = ("/dev", "/tmp")


class UnsupportedPlatformError(RuntimeError):
    pass


@dataclass(frozen=True)
class RuntimeTransport:
    kind: str        # "unix_socket" | "named_pipe"
    base_url: str

    @property
    def is_unix(self) -> bool:
        return self.kind == "unix_socket"


def resolve_runtime_transport(platform: str | None = None) -> RuntimeTransport:
    platform = platform if platform is not None else sys.platform
    if platform.startswith("linux") or platform == "darwin":
        return RuntimeTransport("unix_socket", UNIX_SOCKET_URL)
    if platform == "win32":
        return RuntimeTransport("named_pipe", WINDOWS_PIPE_URL)
    raise UnsupportedPlatformError(f"No docker transport for platform '{platform}'")


def build_container_options(request, identity, unix_host: bool, service_port: int = 1883) -> dict:
    """Keyword arguments for ``containers.create`` of a workload."""
    options = {
        "image": request.image_full_name,
        "detach": True,
        "environment": [
            f"{ENV_MASTER}={identity.master_address}",
            f"{ENV_USER}={identity.client_id}",
            f"{ENV_PASSWORD}={identity.client_key}",
            f"{ENV_NODE_ID}={request.workload_id}",
        ],
        "ports": {f"{service_port}/tcp": service_port},
        "network_mode": "host",
        "mounts": [],
    }
    if unix_host:
        options["privileged"] = True
        options["mounts"] = [Mount(target=path, source=path, type="bind") for path in HOST_BIND_PATHS]
    return options


class DockerRuntime:
    """Thin boundary over the docker SDK; the client is created on first use."""

    def __init__(self, base_url: str, client_factory=docker.DockerClient):
        self.base_url = base_url
        self._client_factory = client_factory
        self._client = None

    @property
    def client(self):
        if self._client is None:
            self._client = self._client_factory(base_url=self.base_url)
        return self._client

    def list_images(self):
        return self.client.images.list()

    def pull_image(self, image_name: str, tag: str, image_source: str | None = None, progress=None):
        api = self.client.api
        if image_source:
            output = api.import_image_from_url(image_source, repository=image_name, tag=tag)
            events = [_decode_line(line) for line in str(output or "").splitlines() if line.strip()]
        else:
            events = api.pull(image_name, tag=tag, stream=True, decode=True)

        for event in events:
            if "error" in event:
                raise DockerException(f"Pulling {image_name}:{tag} failed: {event['error']}")
            if progress is not None:
                progress.report(event)

    def create_container(self, **options) -> str:
        container = self.client.containers.create(**options)
        return container.id

    def start_container(self, container_id: str):
        self.client.api.start(container_id)

    def stop_container(self, container_id: str):
        self.client.api.stop(container_id)

    def remove_container(self, container_id: str):
        self.client.api.remove_container(container_id, force=True)

    def delete_image(self, image: str):
        self.client.images.remove(image=image, force=True)

    def close(self):
        if self._client is not None:
            try:
                self._client.close()
            except Exception:
                log.exception("Error closing docker client")
            self._client = None


def _decode_line(line: str) -> dict:
    try:
        data = json.loads(line)
    except ValueError:
        return {"status": line.strip()}
    return data if isinstance(data, dict) else {"status": str(data)}
