#!/usr/bin/env python3
# slave_agent.py
import logging
import signal
import threading

import uvicorn

from slave_runtime.config import settings
from slave_runtime.main import app, build_supervisor

log = logging.getLogger("slave_agent")

stop_event = threading.Event()


def _sig(*_):
    stop_event.set()


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="[%(asctime)s] %(levelname)s %(name)s - %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


def run_agent(supervisor, poll: float = 1.0):
    supervisor.start()
    log.info("Agent %s started", supervisor.agent_id)
    try:
        while not stop_event.wait(poll):
            pass
    finally:
        log.info("Shutting down agent %s", supervisor.agent_id)
        supervisor.stop()


def main():
    configure_logging(settings.LOG_LEVEL)

    if settings.STATUS_API_ENABLED:
        # the app lifespan owns the supervisor
        uvicorn.run(app, host=settings.STATUS_HOST, port=settings.STATUS_PORT, log_config=None)
        return

    signal.signal(signal.SIGTERM, _sig)
    signal.signal(signal.SIGINT, _sig)
    run_agent(build_supervisor(settings))


if __name__ == "__main__":
    main()
