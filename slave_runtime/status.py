from enum import Enum


class SlaveAction(str, Enum):
    START = "Start"
    STOP = "Stop"


class WorkloadState(str, Enum):
    ABSENT = "absent"        # not in the registry
    RUNNING = "running"      # create + start accepted by the runtime


class ConnectionState(str, Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


def parse_action(value) -> SlaveAction | None:
    """Map a wire value onto a SlaveAction; anything unknown yields None."""
    if isinstance(value, SlaveAction):
        return value
    if not isinstance(value, str):
        return None
    for action in SlaveAction:
        if action.value.lower() == value.strip().lower():
            return action
    return None
