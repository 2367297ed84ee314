"""Pydantic models for resolved configuration and provisioning results."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ADDRESS = "127.0.0.1:3000"
DEFAULT_DATABASE = "sqlite:w_orchid.db"
DEFAULT_MICROCONTROLLER_COUNT = 1
DEFAULT_SENSORS_PER_MICROCONTROLLER = 2

MAX_MICROCONTROLLER_COUNT = 0xFFFF
MAX_SENSORS_PER_MICROCONTROLLER = 0xFF


class ServerConfig(BaseModel):
    """Fully resolved server configuration."""

    model_config = ConfigDict(frozen=True)

    address: str = Field(
        default=DEFAULT_ADDRESS, description="Network bind address in host:port form."
    )
    database: str = Field(
        default=DEFAULT_DATABASE, description="Database locator in connection-string form."
    )
    microcontroller_count: int = Field(
        default=DEFAULT_MICROCONTROLLER_COUNT, ge=0, le=MAX_MICROCONTROLLER_COUNT
    )
    sensors_per_microcontroller: int = Field(
        default=DEFAULT_SENSORS_PER_MICROCONTROLLER, ge=0, le=MAX_SENSORS_PER_MICROCONTROLLER
    )


class ProvisionSummary(BaseModel):
    """Outcome of a successful provisioning run."""

    database_path: str
    microcontroller_count: int = Field(..., ge=0)
    sensor_count: int = Field(..., ge=0)
    elapsed_ms: int = Field(
        ..., ge=0, description="Duration in milliseconds from connect to close."
    )
