# slave_runtime/api/endpoints/status.py
from fastapi import APIRouter, Request

from slave_runtime.controllers import status_controller
from slave_runtime.models.agent import AgentStatus

router = APIRouter()


@router.get("/health")
def health():
    return status_controller.health()


@router.get("/status", response_model=AgentStatus)
def status(request: Request):
    supervisor = getattr(request.app.state, "supervisor", None)
    return status_controller.agent_status(supervisor)
