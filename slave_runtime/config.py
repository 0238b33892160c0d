# slave_runtime/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Controller / broker ─────────────────────────────────────────────────────
    SERVER_MASTER: str = "localhost"
    SERVER_CLIENT_ID: str = ""
    SERVER_CLIENT_KEY: str = ""
    MQTT_PORT: int = 1883
    MQTT_LOG_VERBOSE: str = ""              # any non-empty value enables tracing
    RECONNECT_INTERVAL: float = 5.0         # seconds between liveness checks

    # ── Container runtime ───────────────────────────────────────────────────────
    DOCKER_BASE_URL: str | None = None      # overrides the platform default
    SERVICE_PORT: int = 1883                # bound 1:1 into every workload
    ACTION_WORKERS: int = 4

    # ── Process ─────────────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    STATUS_API_ENABLED: bool = False
    STATUS_HOST: str = "127.0.0.1"
    STATUS_PORT: int = 8080

    @property
    def mqtt_verbose(self) -> bool:
        return bool(self.MQTT_LOG_VERBOSE.strip())


settings = Settings()
