"""Reconciliation configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class ReconcileSettings(BaseSettings):
    """Settings loaded from environment variables (prefix RECONCILE_)."""

    # Document store
    DATABASE_URL: str = "sqlite:///./reconcile.db"

    # Collections
    PROJECTS_COLLECTION: str = "projects"
    SCOPES_COLLECTION: str = "projectScopes"
    SCHEDULES_COLLECTION: str = "schedules"

    # Batch writes (store-side transaction limit)
    BATCH_CHUNK_SIZE: int = 400

    # KPI pool
    QUALIFYING_STATUSES: str = "Accepted,In Progress"
    INCLUDE_ARCHIVED: bool = False
    EXCLUDED_CUSTOMERS: str = ""  # substring match, e.g. "sop inc"
    EXCLUDED_PROJECT_NAMES: str = ""  # exact match, e.g. "PMC Operations,PMC Shop Time"

    # Dedup
    DEDUP_KEEP_POLICY: str = "lowest_id"  # "lowest_id" | "first_seen"
    DEDUP_MAX_PASSES: int = 3

    LOG_LEVEL: str = "INFO"

    class Config:
        env_prefix = "RECONCILE_"
        env_file = ".env"
        env_file_encoding = "utf-8"

    @property
    def qualifying_statuses(self) -> frozenset[str]:
        return frozenset(_split_csv(self.QUALIFYING_STATUSES))

    @property
    def excluded_customers(self) -> tuple[str, ...]:
        return tuple(_split_csv(self.EXCLUDED_CUSTOMERS))

    @property
    def excluded_project_names(self) -> tuple[str, ...]:
        return tuple(_split_csv(self.EXCLUDED_PROJECT_NAMES))


@lru_cache
def get_settings() -> ReconcileSettings:
    """Get cached settings instance."""
    return ReconcileSettings()
