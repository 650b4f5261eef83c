from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Event Tracking"
    log_level: str = "INFO"
    log_json: bool = True

    # AWS
    aws_region: str = "us-east-1"

    # Durable queue (SQS)
    events_queue_url: str = ""  # env: EVENTS_QUEUE_URL

    # Real-time bus (EventBridge). Name wins over ARN when both are set.
    event_bus_name: str = ""  # env: EVENT_BUS_NAME
    event_bus_arn: str = ""  # env: EVENT_BUS_ARN

    # Database: either a full URL or a Secrets Manager secret holding credentials
    database_url: str = ""  # env: DATABASE_URL
    db_secret_arn: str = ""  # env: DB_SECRET_ARN
    db_echo: bool = False

    # CloudWatch custom metrics (empty = disabled)
    metrics_namespace: str = ""

    # Let a failed queue send fail the wrapped handler so the platform retries it
    propagate_durable_failures: bool = True

    def resolved_bus_name(self) -> str:
        """Bus name to send to: explicit name, else the last path segment of the ARN.

        ARN format: arn:aws:events:region:account:event-bus/bus-name
        """
        if self.event_bus_name:
            return self.event_bus_name
        if self.event_bus_arn:
            return self.event_bus_arn.rsplit("/", 1)[-1]
        return ""


@lru_cache
def get_settings() -> Settings:
    return Settings()
