"""
Configuration settings for rowdesk.

Uses Pydantic Settings to load environment variables for the database
connection, logging, paging caps, and the change-feed/device-dashboard wiring.
"""
from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("rowdesk", alias="DB_NAME")
    db_schema: str = Field("public", alias="DB_SCHEMA")
    db_pool_min: int = Field(1, alias="DB_POOL_MIN")
    db_pool_max: int = Field(5, alias="DB_POOL_MAX")

    # Application
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Browsing
    fetch_limit: int = Field(100, alias="ROWDESK_FETCH_LIMIT")
    page_size: int = Field(20, alias="ROWDESK_PAGE_SIZE")
    reserved_prefix: str = Field("_", alias="ROWDESK_RESERVED_PREFIX")
    system_tables: List[str] = Field(
        default_factory=lambda: ["schema_migrations", "schema_version"],
        alias="ROWDESK_SYSTEM_TABLES",
    )

    # Device dashboard / change feed
    device_table: str = Field("iot_devices", alias="ROWDESK_DEVICE_TABLE")
    tenant_column: str = Field("company_id", alias="ROWDESK_TENANT_COLUMN")
    tenant_table: str = Field("companies", alias="ROWDESK_TENANT_TABLE")
    company_id: Optional[str] = Field(None, alias="ROWDESK_COMPANY_ID")
    change_channel: str = Field("rowdesk_changes", alias="ROWDESK_CHANGE_CHANNEL")
    tick_seconds: float = Field(60.0, alias="ROWDESK_TICK_SECONDS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
