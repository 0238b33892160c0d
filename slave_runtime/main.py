# slave_runtime/main.py
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from functools import partial

from fastapi import FastAPI

from slave_runtime.api.router import api_router
from slave_runtime.config import settings as default_settings
from slave_runtime.controllers.action_controller import ActionDispatcher
from slave_runtime.models.agent import AgentIdentity
from slave_runtime.services.lifecycle_service import LifecycleManager
from slave_runtime.services.supervisor import ConnectionSupervisor
from slave_runtime.utils.docker_manager import DockerRuntime, resolve_runtime_transport
from slave_runtime.utils.mqtt_utils import create_mqtt_client


def build_supervisor(settings=default_settings, platform: str | None = None) -> ConnectionSupervisor:
    # raises UnsupportedPlatformError; that one is fatal
    transport = resolve_runtime_transport(platform)
    identity = AgentIdentity.from_settings(settings)

    runtime = DockerRuntime(settings.DOCKER_BASE_URL or transport.base_url)
    manager = LifecycleManager(runtime, identity, unix_host=transport.is_unix,
                               service_port=settings.SERVICE_PORT)
    dispatcher = ActionDispatcher(manager, partial(ThreadPoolExecutor, max_workers=settings.ACTION_WORKERS,
                                                   thread_name_prefix="action"))
    mqtt_client = create_mqtt_client(identity, verbose=settings.mqtt_verbose)

    return ConnectionSupervisor(runtime, manager, dispatcher, mqtt_client, identity,
                                broker_port=settings.MQTT_PORT, interval=settings.RECONNECT_INTERVAL)


def create_app(supervisor_factory=build_supervisor) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        supervisor = supervisor_factory()
        supervisor.start()
        app.state.supervisor = supervisor
        try:
            yield
        finally:
            supervisor.stop()
            app.state.supervisor = None

    app = FastAPI(lifespan=lifespan)
    app.include_router(api_router)
    return app


app = create_app()
