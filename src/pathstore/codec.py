"""Encoding between pydantic models and entity property mappings.

Field names map to property names through pydantic aliases, and fields
declared with ``Field(exclude=True)`` are not stored. ``None`` values are
left out of the entity, so they read back as absent properties.

Key-valued fields should be annotated with :data:`KeyProperty` so pydantic
keeps the Key instance as-is::

    class Task(BaseModel):
        title: str = Field(alias="Title")
        owner: KeyProperty | None = None
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, InstanceOf
from pydantic import ValidationError as PydanticValidationError
from pydantic.fields import FieldInfo

from pathstore.errors import ValidationError
from pathstore.keys import Key
from pathstore.values import snapshot_entity

M = TypeVar("M", bound=BaseModel)

KeyProperty = InstanceOf[Key]


def property_name(name: str, info: FieldInfo) -> str:
    """Name under which a model field is stored."""
    return info.serialization_alias or info.alias or name


def _input_name(name: str, info: FieldInfo) -> str:
    if isinstance(info.validation_alias, str):
        return info.validation_alias
    return info.alias or name


def encode(model: BaseModel) -> dict[str, Any]:
    """Convert a model instance into a validated entity mapping."""
    if not isinstance(model, BaseModel):
        raise ValidationError(f"Expected a pydantic model, got {type(model).__name__}")

    entity: dict[str, Any] = {}
    for name, info in type(model).model_fields.items():
        if info.exclude:
            continue
        # getattr rather than model_dump: dumping would turn Keys into dicts.
        value = getattr(model, name)
        if value is None:
            continue
        entity[property_name(name, info)] = value
    return snapshot_entity(entity)


def decode(model_cls: type[M], entity: Mapping[str, Any]) -> M:
    """Build a model instance from an entity mapping."""
    data: dict[str, Any] = {}
    for name, info in model_cls.model_fields.items():
        if info.exclude:
            continue
        prop = property_name(name, info)
        if prop in entity:
            value = entity[prop]
            data[_input_name(name, info)] = list(value) if isinstance(value, list) else value
    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Cannot decode {model_cls.__name__}: {e}") from e
