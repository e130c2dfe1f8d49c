import os
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """
    Application configuration settings.
    """
    model_config = SettingsConfigDict(env_prefix="LLM_OBSERVATORY_", env_file=".env", extra="ignore")

    # Service Info
    service_name: str = "llm-observatory-execution"
    environment: str = "local"
    log_level: str = "INFO"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Execution context
    repo_name: str = "llm-observatory"
    execution_enforce: bool = True

    # Result emission: console | json | jsonl | none
    result_sink: str = "console"
    sink_verbose: bool = True

    # Paths
    base_dir: str = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    results_path: str = os.path.join(base_dir, "executions.jsonl")

settings = Settings()
