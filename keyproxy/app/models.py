"""
Data Models Module

Pydantic models for the key table entries.
"""

from pydantic import BaseModel, ConfigDict, Field


class BackendDescriptor(BaseModel):
    """Backend a single application key resolves to."""

    model_config = ConfigDict(frozen=True)

    base_path: str = Field(
        ...,
        description="Upstream origin and path prefix (e.g., http://backend:8081)",
        min_length=1,
    )
    real_key: str = Field(
        ...,
        description="Credential sent upstream in place of the caller's key",
        min_length=1,
    )
