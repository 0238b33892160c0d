# slave_runtime/controllers/status_controller.py
from fastapi import HTTPException

from slave_runtime.models.agent import AgentStatus, WorkloadInfo


def health():
    return {"status": "ok"}


def agent_status(supervisor) -> AgentStatus:
    if supervisor is None:
        raise HTTPException(status_code=503, detail="Agent not started")
    snapshot = supervisor.snapshot()
    return AgentStatus(
        agent_id=snapshot["agent_id"],
        connection=snapshot["connection"],
        workloads=[
            WorkloadInfo(workload_id=workload_id, container_id=container_id)
            for workload_id, container_id in sorted(snapshot["workloads"].items())
        ],
    )
