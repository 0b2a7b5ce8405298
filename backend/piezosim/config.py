from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from pydantic import Field


class Settings(BaseSettings):
    app_name: str = "Piezo Harvest Simulator"
    debug: bool = True
    env: str = "development"
    log_level: str = "INFO"

    # Server
    backend_host: str = "0.0.0.0"
    backend_port: int = 8000
    reload: bool = False
    cors_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://localhost:3000",
        ]
    )

    # Canvas geometry
    grid_unit: float = 20.0
    point_hit_radius: float = 12.0
    wire_hit_tolerance: float = 8.0

    # Storage dynamics
    charging_rate: float = 0.08
    discharge_time_step: float = 0.01
    discharge_capacitance_scale: float = 1000.0

    # Piezo pulse
    decay_factor: float = 0.92
    decay_threshold: float = 0.1
    decay_start_delay: float = 0.1  # seconds
    decay_tick_period: float = 0.05  # seconds

    # Scheduling
    frame_period: float = 1 / 60
    default_pressure: float = Field(default=1.0, ge=0.0, le=1.0)
    default_auto_step_hz: float = Field(default=1.0, gt=0.0)

    model_config = SettingsConfigDict(
        env_prefix="PIEZOSIM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
