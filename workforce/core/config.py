import os
import logging
from decimal import Decimal
from typing import List
from pydantic import BaseModel, Field
from dotenv import load_dotenv

load_dotenv()


class LeavePolicySettings(BaseModel):
    # Monthly accrual rates per tier (fixed table, overridable per deployment)
    managerial_monthly_rate: Decimal = Field(default=Decimal(os.getenv("LEAVE_MANAGERIAL_RATE", "1.5")))
    standard_monthly_rate: Decimal = Field(default=Decimal(os.getenv("LEAVE_STANDARD_RATE", "1.25")))
    eligibility_months: int = int(os.getenv("LEAVE_ELIGIBILITY_MONTHS", "6"))
    min_denial_notes_length: int = int(os.getenv("LEAVE_MIN_DENIAL_NOTES", "10"))


class AttendanceSettings(BaseModel):
    default_grace_period_minutes: int = int(os.getenv("ATTENDANCE_GRACE_MINUTES", "15"))
    max_upload_bytes: int = int(os.getenv("ATTENDANCE_MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))


class Config(BaseModel):
    app_name: str = "Workforce Operations"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./database.db")

    # Business clock: all month-end and eligibility checks run in this zone
    timezone: str = os.getenv("APP_TIMEZONE", "Asia/Manila")

    # Domain policies
    leave: LeavePolicySettings = LeavePolicySettings()
    attendance: AttendanceSettings = AttendanceSettings()

    # Enterprise Architecture
    version: str = "1.0.0"
    build_id: str = os.getenv("BUILD_ID", "local")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    request_id_header: str = "X-Request-ID"
    actor_header: str = "X-User-Id"

    # Scalability & Performance
    rate_limit_per_minute: int = int(os.getenv("RATE_LIMIT_PER_MINUTE", "60"))
    cors_origins: List[str] = [
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
        if origin.strip()
    ]

settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment not in ("development", "testing"):
    if settings.database_url.startswith("sqlite"):
        _logger.warning("⚠ Using SQLite outside development; ledger row locking is not enforced.")
