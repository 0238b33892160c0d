# slave_runtime/controllers/action_controller.py
import json
import logging

from slave_runtime.models.action import ActionRequest

log = logging.getLogger(__name__)


def decode_actions(payload) -> list[ActionRequest]:
    """Decode a channel payload into requests.

    A single object yields one request; a JSON array yields one per element,
    with malformed elements dropped.
    """
    if isinstance(payload, (bytes, bytearray)):
        payload = payload.decode("utf-8")
    data = json.loads(payload)

    if isinstance(data, list):
        requests = []
        for index, item in enumerate(data):
            try:
                requests.append(ActionRequest.model_validate(item))
            except ValueError as e:
                log.error("Dropping malformed action #%d: %s", index, e)
        return requests
    return [ActionRequest.model_validate(data)]


class ActionDispatcher:
    """Routes decoded requests to the lifecycle manager.

    With an ``executor_factory`` actions run on a pool that is created by
    ``open`` and dropped by ``close``; without one they run inline.
    """

    def __init__(self, manager, executor_factory=None):
        self._manager = manager
        self._executor_factory = executor_factory
        self._executor = None
        self._closed = False
        self.open()

    def on_message(self, client, userdata, message):
        self.handle_payload(message.topic, message.payload)

    def handle_payload(self, topic: str, payload) -> list[ActionRequest]:
        try:
            requests = decode_actions(payload)
        except ValueError as e:
            log.error("Could not decode message on %s: %s", topic, e)
            return []

        for request in requests:
            self._submit(request)
        return requests

    def dispatch(self, request: ActionRequest):
        try:
            self._manager.execute(request)
        except Exception:
            log.exception("Unhandled error executing action for %s", request.workload_id)

    def open(self):
        self._closed = False
        if self._executor_factory is not None and self._executor is None:
            self._executor = self._executor_factory()

    def close(self):
        # in-flight actions finish, queued ones are dropped
        self._closed = True
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=True)
            self._executor = None

    def _submit(self, request: ActionRequest):
        if self._closed:
            log.error("Dispatcher closed, dropping action for %s", request.workload_id)
            return
        executor = self._executor
        if executor is None:
            self.dispatch(request)
            return
        try:
            executor.submit(self.dispatch, request)
        except RuntimeError:
            log.error("Dispatcher closed, dropping action for %s", request.workload_id)
