# slave_runtime/services/registry.py


class RunningImageRegistry:
    """workload id -> container id for every workload this agent started.

    Not thread-safe on its own; LifecycleManager serializes access.
    """

    def __init__(self):
        self._entries: dict[str, str] = {}

    def __contains__(self, workload_id: str) -> bool:
        return workload_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, workload_id: str) -> str | None:
        return self._entries.get(workload_id)

    def add(self, workload_id: str, container_id: str):
        if workload_id in self._entries:
            raise KeyError(f"Workload {workload_id} already registered")
        self._entries[workload_id] = container_id

    def remove(self, workload_id: str) -> str | None:
        return self._entries.pop(workload_id, None)

    def snapshot(self) -> dict[str, str]:
        return dict(self._entries)

    def clear(self):
        self._entries.clear()
