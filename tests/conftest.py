from uuid import uuid4

import pytest

from slave_runtime.models.action import ActionRequest
from slave_runtime.models.agent import AgentIdentity


class FakeRuntime:
    """Records every boundary call; failures are injected per method name."""

    def __init__(self):
        self.calls = []
        self.fail = {}
        self.created = 0

    def _record(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if name in self.fail:
            raise self.fail[name]

    def names(self):
        return [c[0] for c in self.calls]

    def list_images(self):
        self._record("list_images")
        return []

    def pull_image(self, image_name, tag, image_source=None, progress=None):
        self._record("pull_image", image_name, tag, image_source)
        if progress is not None:
            progress.report({"status": "Pulling from " + image_name, "id": tag})

    def create_container(self, **options):
        self._record("create_container", **options)
        self.created += 1
        return f"cid-{self.created}"

    def start_container(self, container_id):
        self._record("start_container", container_id)

    def stop_container(self, container_id):
        self._record("stop_container", container_id)

    def remove_container(self, container_id):
        self._record("remove_container", container_id)

    def delete_image(self, image):
        self._record("delete_image", image)

    def close(self):
        self._record("close")


@pytest.fixture
def runtime():
    return FakeRuntime()


@pytest.fixture
def identity():
    return AgentIdentity(master_address="master.local", client_id="agent-1", client_key="s3cret")


@pytest.fixture
def make_request():
    def _make(action="Start", workload_id=None, image="demo/app", tag="1.0", source=None):
        payload = {"Id": str(workload_id or uuid4()), "ImageName": image, "Tag": tag, "Action": action}
        if source:
            payload["ImageSource"] = source
        return ActionRequest.model_validate(payload)
    return _make
