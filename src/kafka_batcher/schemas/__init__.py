"""
Record schemas.

Pydantic models for the record types the batcher can consume, and the
registry mapping configured type names to them.

Schemas:
    registry.py - RecordTypeRegistry, TypeDescriptor
    records.py  - UserData

Design Decisions:
    - Pydantic for validation and JSON parsing
    - Record types registered statically, never loaded by name at runtime
    - Field order of the model defines column order of the output
"""

from kafka_batcher.schemas.records import UserData
from kafka_batcher.schemas.registry import (
    RecordTypeRegistry,
    TypeDescriptor,
    default_registry,
    register_record_type,
)

__all__ = [
    "RecordTypeRegistry",
    "TypeDescriptor",
    "UserData",
    "default_registry",
    "register_record_type",
]
