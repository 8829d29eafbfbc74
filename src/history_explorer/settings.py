"""Settings for history-explorer.

All settings use the HISTORY_EXPLORER_ prefix and cover:
- Collection rehydration mode (corrected or legacy behaviour)
- Snapshot compression for the event store
- Logging
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for history-explorer.

    Environment variable prefix: HISTORY_EXPLORER_
    """

    # -------------------------------------------------------------------------
    # Rehydration
    # -------------------------------------------------------------------------

    collection_mode: Literal["rehydrated", "legacy"] = Field(
        default="rehydrated",
        description="How one-to-many relationships are rebuilt. 'rehydrated' inserts the "
        "point-in-time snapshot of every member. 'legacy' re-inserts the original live "
        "member and drops members already visited during the traversal.",
    )

    # -------------------------------------------------------------------------
    # Event store snapshots
    # -------------------------------------------------------------------------

    snapshot_compression_level: int = Field(
        default=6,
        ge=0,
        le=9,
        description="zlib compression level applied to published state snapshots.",
    )

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------

    log_level: str = Field(
        default="INFO",
        description="Minimum log level emitted by structlog.",
    )
    log_json: bool = Field(
        default=False,
        description="Render log events as JSON lines instead of the console format.",
    )

    model_config = SettingsConfigDict(env_prefix="HISTORY_EXPLORER_")
