# app/core/config.py
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from app.scheduling.config import SchedulingConfig

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore")

    APP_NAME: str = "Clinic Hub API"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    DB_HOST: str = "localhost"
    DB_PORT: int = 3306
    DB_USER: str = "clinic"      # en minúsculas si así creaste el user
    DB_PASSWORD: str = ""
    DB_NAME: str = "clinic_hub"
    DATABASE_URL: Optional[str] = None   # si viene, pisa a los DB_*

    # --- política de agenda ---
    SCHED_MIN_GAP_MINUTES: int = 60
    SCHED_MAX_APPOINTMENTS_PER_DAY: int = 12
    SCHED_REQUIRE_BUSINESS_HOURS: bool = True
    SCHED_MAX_ADVANCE_BOOKING_DAYS: int = 90
    SCHED_ALLOW_WEEKEND_APPOINTMENTS: bool = True
    SCHED_TELECONSULTA_ENABLED: bool = True

    @property
    def async_database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (f"mysql+aiomysql://{self.DB_USER}:{self.DB_PASSWORD}"
                f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}?charset=utf8mb4")

    def scheduling_config(self) -> SchedulingConfig:
        return SchedulingConfig(
            minimum_gap_minutes=self.SCHED_MIN_GAP_MINUTES,
            max_appointments_per_day=self.SCHED_MAX_APPOINTMENTS_PER_DAY,
            require_business_hours=self.SCHED_REQUIRE_BUSINESS_HOURS,
            max_advance_booking_days=self.SCHED_MAX_ADVANCE_BOOKING_DAYS,
            allow_weekend_appointments=self.SCHED_ALLOW_WEEKEND_APPOINTMENTS,
            teleconsulta_enabled=self.SCHED_TELECONSULTA_ENABLED,
        )


settings = Settings()
