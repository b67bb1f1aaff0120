"""
Record type registry and cached type descriptors.

Record types are pydantic models registered under the type name used in
configuration. The first resolution of a name builds a TypeDescriptor from
the model's declared fields; every later resolution returns the same
cached instance.
"""

import logging
import threading
from dataclasses import dataclass
from operator import attrgetter
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel

from core.errors import ConfigError, UnknownTypeError
from kafka_batcher.common.logging import get_logger, log_with_context

M = TypeVar("M", bound=Type[BaseModel])

Accessor = Callable[[Any], Any]


@dataclass(frozen=True)
class TypeDescriptor:
    """Ordered field schema for one record type.

    Attributes:
        type_name: Configured name the descriptor was resolved for
        model: Pydantic model class records are validated into
        fields: Ordered (field name, accessor) pairs in declaration order
    """

    type_name: str
    model: Type[BaseModel]
    fields: Tuple[Tuple[str, Accessor], ...]

    @classmethod
    def from_model(cls, type_name: str, model: Type[BaseModel]) -> "TypeDescriptor":
        return cls(
            type_name=type_name,
            model=model,
            fields=tuple((name, attrgetter(name)) for name in model.model_fields),
        )

    @property
    def field_names(self) -> List[str]:
        return [name for name, _ in self.fields]

    def values(self, record: Any) -> List[Any]:
        """Field values of a record, in header order."""
        return [accessor(record) for _, accessor in self.fields]


class RecordTypeRegistry:
    """
    Maps configured type names to record models.

    Thread Safety:
    - register() and first resolution are serialized by one lock
    - resolved descriptors are read without locking

    Usage:
        >>> registry = RecordTypeRegistry()
        >>> registry.register("UserData", UserData)
        >>> descriptor = registry.resolve("UserData")
        >>> descriptor.field_names
        ['name', 'age', 'gender']
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._models: Dict[str, Type[BaseModel]] = {}
        self._descriptors: Dict[str, TypeDescriptor] = {}
        self._lock = threading.Lock()
        self._logger = logger or get_logger(__name__)

    def register(self, type_name: str, model: Type[BaseModel]) -> None:
        """
        Register a record model under a type name.

        Raises:
            ConfigError: If the model is not a pydantic model, or the name
                is already bound to a different model
        """
        if not (isinstance(model, type) and issubclass(model, BaseModel)):
            raise ConfigError(
                f"Record type '{type_name}' must be a pydantic model, got {model!r}"
            )

        with self._lock:
            existing = self._models.get(type_name)
            if existing is not None and existing is not model:
                raise ConfigError(
                    f"Record type '{type_name}' is already registered to "
                    f"{existing.__name__}"
                )
            self._models[type_name] = model

    def resolve(self, type_name: str) -> TypeDescriptor:
        """
        Get the descriptor for a type name, building it on first use.

        Raises:
            UnknownTypeError: If no model is registered under type_name
        """
        descriptor = self._descriptors.get(type_name)
        if descriptor is not None:
            return descriptor

        with self._lock:
            # Another thread may have populated it while we waited
            descriptor = self._descriptors.get(type_name)
            if descriptor is not None:
                return descriptor

            model = self._models.get(type_name)
            if model is None:
                raise UnknownTypeError(
                    type_name, context={"registered": sorted(self._models)}
                )

            descriptor = TypeDescriptor.from_model(type_name, model)
            self._descriptors[type_name] = descriptor

        log_with_context(
            self._logger,
            logging.DEBUG,
            "Resolved record type",
            record_type=type_name,
            fields=descriptor.field_names,
        )
        return descriptor

    def registered_names(self) -> List[str]:
        with self._lock:
            return sorted(self._models)

    def __contains__(self, type_name: str) -> bool:
        return type_name in self._models


default_registry = RecordTypeRegistry()


def register_record_type(
    *type_names: str,
    registry: Optional[RecordTypeRegistry] = None,
) -> Callable[[M], M]:
    """
    Class decorator registering a pydantic model under one or more names.

    Example:
        @register_record_type("UserData")
        class UserData(BaseModel):
            name: str
    """
    target = registry or default_registry

    def decorator(model: M) -> M:
        names = type_names or (model.__name__,)
        for name in names:
            target.register(name, model)
        return model

    return decorator


__all__ = [
    "RecordTypeRegistry",
    "TypeDescriptor",
    "default_registry",
    "register_record_type",
]
