"""
Raw payload to record conversion.

Turns one Kafka message value (JSON object text) into an instance of the
configured record type.
"""

from typing import Optional, Union

from pydantic import BaseModel, ValidationError

from core.errors import DeserializationError
from kafka_batcher.schemas.registry import (
    RecordTypeRegistry,
    TypeDescriptor,
    default_registry,
)


class RecordDeserializer:
    """
    Deserializes raw payloads into records of one configured type.

    The type name is resolved through the registry, whose descriptor cache
    is populated on the first successful resolution and reused for every
    following message.

    Usage:
        >>> deserializer = RecordDeserializer("UserData")
        >>> record = deserializer.deserialize(b'{"name": "Bob", "age": 25, "gender": "M"}')
        >>> record.age
        25
    """

    def __init__(
        self,
        type_name: str,
        registry: Optional[RecordTypeRegistry] = None,
    ):
        """
        Initialize deserializer.

        Args:
            type_name: Configured record type name
            registry: Registry to resolve the type in (default: default_registry)
        """
        self.type_name = type_name
        self._registry = registry or default_registry

    @property
    def descriptor(self) -> TypeDescriptor:
        """
        Cached descriptor of the configured type.

        Raises:
            UnknownTypeError: If the type name is not registered
        """
        return self._registry.resolve(self.type_name)

    def deserialize(self, payload: Union[bytes, str, None]) -> BaseModel:
        """
        Parse one payload into a record.

        Args:
            payload: Raw message value (UTF-8 bytes or text)

        Returns:
            Immutable record instance of the configured type

        Raises:
            UnknownTypeError: If the type name is not registered
            DeserializationError: If the payload is empty, not valid JSON,
                or does not match the record's fields
        """
        model = self.descriptor.model

        if payload is None:
            raise DeserializationError(
                "Empty payload", context={"record_type": self.type_name}
            )

        if isinstance(payload, (bytes, bytearray)):
            try:
                payload = bytes(payload).decode("utf-8")
            except UnicodeDecodeError as e:
                raise DeserializationError(
                    "Payload is not valid UTF-8",
                    cause=e,
                    context={"record_type": self.type_name},
                ) from e

        try:
            return model.model_validate_json(payload)
        except ValidationError as e:
            raise DeserializationError(
                f"Payload does not match record type {self.type_name}: "
                f"{e.error_count()} validation error(s)",
                cause=e,
                context={"record_type": self.type_name},
            ) from e


__all__ = ["RecordDeserializer"]
