import os
from typing import List, Literal
from dotenv import load_dotenv


# Load environment variables from .env file located in the parent directory.
# Environment variables explicitly set (e.g., by Docker Compose) take precedence.
BASE_DIR = os.path.dirname(os.path.dirname(__file__))
ENV_PATH = os.path.join(BASE_DIR, '.env')
load_dotenv(ENV_PATH)


def parse_brokers(value: str) -> List[str]:
    """
    Parses the Kafka broker list. Accepts comma-separated string or list-like string.
    Example: "kafka1:9092,kafka2:9092" → ["kafka1:9092", "kafka2:9092"]
    """
    if not value:
        return []
    value = value.strip()
    if value.startswith("[") and value.endswith("]"):
        value = value[1:-1]
    return [i.strip().strip('"').strip("'") for i in value.split(",") if i.strip()]


def parse_bool(value: str) -> bool:
    return str(value).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    # --- General Environment Settings ---
    # ENVIRONMENT determines application behavior (e.g., how strict startup validation is).
    ENVIRONMENT: Literal["local", "staging",
                         "production"] = os.getenv('ENVIRONMENT', 'local')

    # --- HTTP Server ---
    HTTP_HOST: str = os.getenv('HTTP_HOST', '0.0.0.0')
    HTTP_PORT: int = int(os.getenv('HTTP_PORT', 8080))

    # --- PostgreSQL Database Configuration ---
    # Defaults are set for local Docker Compose setup.
    POSTGRES_USER: str = os.getenv('POSTGRES_USER', 'calendar')
    POSTGRES_PASSWORD: str = os.getenv('POSTGRES_PASSWORD', 'calendar_password')
    POSTGRES_SERVER: str = os.getenv('POSTGRES_SERVER', 'postgres')
    POSTGRES_PORT: int = int(os.getenv('POSTGRES_PORT', 5432))
    POSTGRES_DB: str = os.getenv('POSTGRES_DB', 'calendar_db')

    # Full database URL. Takes precedence over the individual components if set.
    POSTGRES_DB_URL: str = os.getenv('POSTGRES_DB_URL', "")

    # Create the schema once at startup.
    AUTO_MIGRATE: bool = parse_bool(os.getenv('AUTO_MIGRATE', 'false'))

    # --- Logging ---
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'info')
    LOG_FORMAT: str = os.getenv('LOG_FORMAT', 'json')

    # --- Kafka Configuration ---
    RAW_KAFKA_BOOTSTRAP_SERVERS: str = os.getenv('KAFKA_BOOTSTRAP_SERVERS', 'kafka:29092')
    KAFKA_BOOTSTRAP_SERVERS: List[str] = parse_brokers(RAW_KAFKA_BOOTSTRAP_SERVERS)
    KAFKA_TOPIC_EVENTS: str = os.getenv('KAFKA_TOPIC_EVENTS', 'calendar-events')
    KAFKA_CONSUMER_GROUP: str = os.getenv('KAFKA_CONSUMER_GROUP', 'calendar-consumer-group')
    # New consumer groups start from the end of the topic.
    KAFKA_AUTO_OFFSET_RESET: str = os.getenv('KAFKA_AUTO_OFFSET_RESET', 'latest')
    KAFKA_REQUEST_TIMEOUT_MS: int = int(os.getenv('KAFKA_REQUEST_TIMEOUT_MS', 10000))

    # --- Replication ---
    REPLICATION_ENABLED: bool = parse_bool(os.getenv('REPLICATION_ENABLED', 'true'))
    REPLICATION_INTERVAL_SECONDS: float = float(os.getenv('REPLICATION_INTERVAL_SECONDS', 10))
    CONSUMER_READ_TIMEOUT_SECONDS: float = float(os.getenv('CONSUMER_READ_TIMEOUT_SECONDS', 5))
    CONSUMER_RETRY_BACKOFF_SECONDS: float = float(os.getenv('CONSUMER_RETRY_BACKOFF_SECONDS', 1))
    SHUTDOWN_TIMEOUT_SECONDS: float = float(os.getenv('SHUTDOWN_TIMEOUT_SECONDS', 10))

    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        """
        Constructs the SQLAlchemy database URI.
        Prioritizes a full URL (POSTGRES_DB_URL) over individual components.
        """
        if self.POSTGRES_DB_URL:
            return self.POSTGRES_DB_URL

        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def is_local(self) -> bool:
        return self.ENVIRONMENT == "local"

    def validate(self) -> List[str]:
        """Returns a list of configuration problems; empty when the settings are usable."""
        problems = []
        if not self.SQLALCHEMY_DATABASE_URI:
            problems.append("database DSN is empty")
        if self.REPLICATION_ENABLED:
            if not self.KAFKA_BOOTSTRAP_SERVERS:
                problems.append("KAFKA_BOOTSTRAP_SERVERS is empty")
            if not self.KAFKA_TOPIC_EVENTS:
                problems.append("KAFKA_TOPIC_EVENTS is empty")
        for name in (
            "REPLICATION_INTERVAL_SECONDS",
            "CONSUMER_READ_TIMEOUT_SECONDS",
            "SHUTDOWN_TIMEOUT_SECONDS",
        ):
            if getattr(self, name) <= 0:
                problems.append(f"{name} must be positive")
        if self.CONSUMER_RETRY_BACKOFF_SECONDS < 0:
            problems.append("CONSUMER_RETRY_BACKOFF_SECONDS must not be negative")
        return problems


# Instantiate the settings object to be used throughout the application
settings = Settings()
