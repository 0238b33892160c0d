# slave_runtime/models/agent.py
from pydantic import BaseModel, ConfigDict


class AgentIdentity(BaseModel):
    model_config = ConfigDict(frozen=True)

    master_address: str
    client_id: str
    client_key: str

    @classmethod
    def from_settings(cls, settings) -> "AgentIdentity":
        return cls(
            master_address=settings.SERVER_MASTER,
            client_id=settings.SERVER_CLIENT_ID,
            client_key=settings.SERVER_CLIENT_KEY,
        )


class WorkloadInfo(BaseModel):
    workload_id: str
    container_id: str


class AgentStatus(BaseModel):
    agent_id: str
    connection: str
    workloads: list[WorkloadInfo] = []
