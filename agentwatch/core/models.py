"""Strict Pydantic base models shared by every agentwatch data type.

Persisted records use camelCase keys on disk while Python code works with
snake_case attributes, so the base models carry a camelCase alias generator
and accept either spelling on input.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class StrictBaseModel(BaseModel):
    """Base model with strict validation.

    It enforces:
    - strict=True: Type coercion is disabled, inputs must match exact types
    - extra="forbid": No additional fields allowed
    - validate_assignment=True: Validation on all field assignments
    - frozen=True: Immutable by default, changes go through model_copy()
    """

    model_config = ConfigDict(
        strict=True,              # No type coercion - fail fast on wrong types
        extra="forbid",           # No extra fields - fail fast on unknown keys
        validate_assignment=True,
        frozen=True,
        validate_default=True,
        use_enum_values=False,    # Preserve enum objects for their methods
        arbitrary_types_allowed=False,
        alias_generator=to_camel,
        populate_by_name=True,
    )



__all__ = [
    "StrictBaseModel",
]
