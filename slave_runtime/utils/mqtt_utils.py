# slave_runtime/utils/mqtt_utils.py
import logging

import paho.mqtt.client as mqtt

EXACTLY_ONCE = 2
TRACE_LOGGER = "slave_runtime.mqtt"


def action_topic(agent_id: str) -> str:
    return f"slave/{agent_id}/action"


def actions_topic(agent_id: str) -> str:
    return f"slave/{agent_id}/actions"


def subscriptions(agent_id: str) -> list[tuple[str, int]]:
    return [(action_topic(agent_id), EXACTLY_ONCE), (actions_topic(agent_id), EXACTLY_ONCE)]


def create_mqtt_client(identity, verbose: bool = False, client_class=mqtt.Client):
    client = client_class(
        mqtt.CallbackAPIVersion.VERSION2,
        client_id=identity.client_id,
        clean_session=True,
        reconnect_on_failure=False,
    )
    client.username_pw_set(identity.client_id, identity.client_key)

    if verbose:
        trace = logging.getLogger(TRACE_LOGGER)
        trace.setLevel(logging.DEBUG)
        client.enable_logger(trace)
    return client
