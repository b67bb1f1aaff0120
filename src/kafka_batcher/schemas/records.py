"""
Built-in record types.

Contains Pydantic models for records consumed from the source topic.
Importing this module registers them in the default registry.
"""

from pydantic import BaseModel, ConfigDict, Field

from kafka_batcher.schemas.registry import register_record_type


@register_record_type("UserData", "Data.UserData")
class UserData(BaseModel):
    """User data containing name, age and gender.

    Example:
        >>> UserData.model_validate_json('{"name": "Alice", "age": 30, "gender": "F"}')
        UserData(name='Alice', age=30, gender='F')
    """

    name: str = Field(..., description="Name of the user")
    age: int = Field(..., description="Age of the user")
    gender: str = Field(..., description="Gender of the user")

    model_config = ConfigDict(frozen=True, extra="forbid")
