# slave_runtime/services/supervisor.py
import logging
import threading

from slave_runtime.status import ConnectionState
from slave_runtime.utils.mqtt_utils import subscriptions

log = logging.getLogger(__name__)


class ConnectionSupervisor:
    """Keeps the agent attached to the broker.

    Every ``interval`` seconds the liveness check runs; a lost session tears
    down all managed containers and reconnects from scratch. Connection
    failures are logged and retried on the next tick.
    """

    def __init__(self, runtime, manager, dispatcher, mqtt_client, identity,
                 broker_port: int = 1883, interval: float = 5.0):
        self._runtime = runtime
        self._manager = manager
        self._dispatcher = dispatcher
        self._mqtt = mqtt_client
        self._identity = identity
        self._broker_port = broker_port
        self._interval = interval

        self._stop_event = threading.Event()
        self._session_lost = threading.Event()
        self._cycle_lock = threading.Lock()
        self._thread: threading.Thread | None = None

        self._mqtt.on_connect = self._on_connect
        self._mqtt.on_disconnect = self._on_disconnect
        self._mqtt.on_message = dispatcher.on_message

    @property
    def agent_id(self) -> str:
        return self._identity.client_id

    @property
    def connected(self) -> bool:
        return self._mqtt.is_connected() and not self._session_lost.is_set()

    @property
    def connection_state(self) -> ConnectionState:
        return ConnectionState.CONNECTED if self.connected else ConnectionState.DISCONNECTED

    def start(self):
        self._stop_event.clear()
        self._dispatcher.open()
        with self._cycle_lock:
            self.connect()
        self._thread = threading.Thread(target=self._run, name="connection-supervisor", daemon=True)
        self._thread.start()

    def stop(self):
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=self._interval * 2)
            self._thread = None
        self._dispatcher.close()
        with self._cycle_lock:
            self.teardown()
        self._runtime.close()

    def _run(self):
        while not self._stop_event.wait(self._interval):
            self.check_connection()

    def check_connection(self) -> bool:
        """Run one liveness check; returns True when a reset cycle ran."""
        with self._cycle_lock:
            if self._stop_event.is_set() or self.connected:
                return False
            log.warning("Connection to %s lost, resetting agent %s", self._identity.master_address, self.agent_id)
            self.teardown()
            self.connect()
            return True

    def connect(self) -> bool:
        try:
            self._runtime.list_images()
        except Exception:
            log.exception("Error connecting to docker process")
            return False

        self._session_lost.clear()
        try:
            self._mqtt.connect(self._identity.master_address, self._broker_port)
            self._mqtt.loop_start()
        except Exception:
            log.exception("Error connecting to broker %s:%s", self._identity.master_address, self._broker_port)
            return False
        log.info("Agent %s connecting to %s:%s", self.agent_id, self._identity.master_address, self._broker_port)
        return True

    def teardown(self):
        self._manager.stop_all()
        try:
            self._mqtt.disconnect()
            self._mqtt.loop_stop()
        except Exception:
            log.exception("Error stopping connection")

    def snapshot(self) -> dict:
        return {
            "agent_id": self.agent_id,
            "connection": self.connection_state.value,
            "workloads": self._manager.running(),
        }

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            log.error("Broker refused connection for %s: %s", self.agent_id, reason_code)
            return
        client.subscribe(subscriptions(self.agent_id))
        log.info("Agent %s connected, subscribed to its action topics", self.agent_id)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        self._session_lost.set()
        log.warning("Agent %s disconnected: %s", self.agent_id, reason_code)
