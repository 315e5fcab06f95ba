"""Whitelist entry model.

A whitelist entry is a user-owned protected path. Any cleanup command
whose text contains a whitelisted path is rejected.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


class WhitelistEntry(BaseModel):
    """Protected path maintained by the operator.

    Attributes:
        id: Unique identifier of the entry.
        path: Protected path (absolute or ``~``-prefixed).
        description: Optional note explaining why the path is protected.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(min_length=1)
    path: str
    description: str | None = None

    @field_validator("path")
    @classmethod
    def strip_path(cls, v: str) -> str:
        """Strip surrounding whitespace from the path."""
        return v.strip()
