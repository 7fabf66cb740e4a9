"""Configuration management using Pydantic settings."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from LEMBOTS_* environment variables or .env."""

    model_config = SettingsConfigDict(
        env_prefix="LEMBOTS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Simulation
    default_max_ticks: int = 200

    # Evaluator
    trace_sample_every: int = 5

    # Solver
    solver_max_attempts: int = 200
    solver_max_time_ms: int = 1500
    solver_max_depth: int = 25
    solver_beam_width: int = 8
    solver_progress_every: int = 25
    solver_workers: int = 1     # >1 evaluates candidates on a thread pool

    # Completed-level store
    progress_path: Path = Path("./data/progress.json")

    # Logging
    log_level: str = "INFO"

    # Server
    api_host: str = "127.0.0.1"
    api_port: int = 8000


settings = Settings()
