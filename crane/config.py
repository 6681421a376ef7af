from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Execution mode: which strategy runs a blueprint
    # Leaving it unset is valid; executions then fail with a configuration error.
    EXECUTION_MODE: Optional[Literal["direct", "http", "workflow"]] = None

    # Delegated (http) mode
    EXECUTION_ENDPOINT: Optional[str] = None
    EXECUTION_TIMEOUT_SECONDS: float = 300.0

    # Direct mode: dotted path to an async factory returning an ActionProvider,
    # e.g. "myapp.browser:create_adapter"
    ADAPTER_FACTORY: Optional[str] = None

    # Durable workflow mode
    WORKFLOW_MAX_ATTEMPTS: int = 3
    WORKFLOW_INITIAL_BACKOFF_MS: int = 1000
    WORKFLOW_BACKOFF_BASE: float = 2.0
    WORKFLOW_MAX_PARALLELISM: int = 1

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./crane.db"

    LOG_LEVEL: str = "INFO"

    # Loads from a .env file in the root directory, variables prefixed with CRANE_
    model_config = SettingsConfigDict(env_file=".env", env_prefix="CRANE_", extra="ignore")

# Singleton instance
settings = Settings()
