"""Base Pydantic models for runner elements.

This module defines the foundational model classes used by registration
events, execution state, reports, and runtime settings.
"""

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict


class SchemaModel(BaseModel):
    """Base immutable model for runner elements.

    Design principles enforced by this model:
        - Immutability: elements cannot be reassigned after creation.
          Registered test cases are never mutated between registration
          and execution.
        - Strict schema validation: unknown or extra fields are rejected
          to avoid silent errors caused by typos in event payloads.

    Arbitrary types are allowed because test bodies and hooks are plain
    callables defined by the executed script.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        frozen=True,
        extra='forbid',
    )


class MutableModel(BaseModel):
    """Base model for aggregates built incrementally during a run."""

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        validate_assignment=True,
        extra='forbid',
    )


class SettingsModel(BaseSettings):
    """Base immutable model for runtime settings.

    Design principles enforced by this model:
        - Immutability: resolved settings cannot be modified after creation.
        - Tolerant schema handling: unknown environment variables are ignored.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra='ignore',
    )
