"""Runtime settings loaded from environment variables."""

from functools import lru_cache
from typing import Annotated

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

NonEmptyStr = Annotated[str, Field(min_length=1)]
PositiveInt = Annotated[int, Field(gt=0)]
CurrencyCode = Annotated[str, Field(min_length=3, max_length=3)]


class Settings(BaseSettings):
    """Environment-driven application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: NonEmptyStr = Field(validation_alias="DATABASE_URL")
    audit_trail_enabled: bool = Field(default=True, validation_alias="AUDIT_TRAIL_ENABLED")
    audit_trail_patient_enabled: bool = Field(
        default=True,
        validation_alias="AUDIT_TRAIL_PATIENT_ENABLED",
    )
    audit_trail_customer_enabled: bool = Field(
        default=True,
        validation_alias="AUDIT_TRAIL_CUSTOMER_ENABLED",
    )
    audit_trail_invoice_enabled: bool = Field(
        default=True,
        validation_alias="AUDIT_TRAIL_INVOICE_ENABLED",
    )
    audit_page_size: PositiveInt = Field(default=30, validation_alias="AUDIT_PAGE_SIZE")
    counter_lock_timeout_ms: PositiveInt = Field(
        default=5_000,
        validation_alias="COUNTER_LOCK_TIMEOUT_MS",
    )
    default_currency: CurrencyCode = Field(default="EUR", validation_alias="DEFAULT_CURRENCY")
    audit_actor_header: str | None = Field(default=None, validation_alias="AUDIT_ACTOR_HEADER")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    def audited_aggregate_flags(self) -> dict[str, bool]:
        """Return per-aggregate audit switches keyed by aggregate type."""

        return {
            "Patient": self.audit_trail_patient_enabled,
            "Customer": self.audit_trail_customer_enabled,
            "Invoice": self.audit_trail_invoice_enabled,
        }


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Load and cache application settings."""

    return Settings()  # type: ignore[call-arg]
