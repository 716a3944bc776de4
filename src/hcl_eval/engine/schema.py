"""
Block schemas with Pydantic v2 models.

A schema describes which attributes and nested block types a block body may
contain and the type each attribute is converted to:

    schema = BlockSchema(
        attributes={
            "instance_type": AttributeSchema(type="string", required=True),
            "tags": AttributeSchema(type="map(string)"),
        },
        block_types={
            "ebs_block_device": NestedBlockSchema(
                nesting="list",
                block=BlockSchema(attributes={"volume_size": AttributeSchema(type="number")}),
            ),
        },
    )

Types may be given as ``Type`` objects or in type syntax (see ``types.parse_type``).
Schemas are frozen so that one instance can be shared across threads.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .types import DYNAMIC, ListType, MapType, PrimitiveType, Type, parse_type


class NestingMode(str, Enum):
    """How many nested blocks of one type a body may hold, and how they are collected."""

    SINGLE = "single"  # at most one, evaluates to an object (or null)
    LIST = "list"  # any number, evaluates to a list of objects
    SET = "set"  # like LIST; order as written
    MAP = "map"  # any number, keyed by the first label


class AttributeSchema(BaseModel):
    """
    Schema of one attribute.

    Attributes:
        type: Type the attribute value is converted to
        required: Attribute must be present
        description: Optional documentation
    """

    model_config = ConfigDict(frozen=True)

    type: Any = Field(default=DYNAMIC, description="Attribute value type")
    required: bool = Field(default=False, description="Attribute must be set")
    description: str | None = Field(default=None, description="Attribute documentation")

    @field_validator("type", mode="before")
    @classmethod
    def parse_type_syntax(cls, v: Any) -> Type:
        """Accept type syntax strings as well as Type objects."""
        if isinstance(v, str):
            return parse_type(v)
        if not isinstance(v, (PrimitiveType, ListType, MapType)):
            raise ValueError(f"Invalid attribute type: {v!r}")
        return v

    @property
    def optional(self) -> bool:
        return not self.required


class NestedBlockSchema(BaseModel):
    """
    Schema of a nested block type.

    Attributes:
        nesting: Nesting mode
        block: Schema of the nested block body
        min_items: Minimum number of blocks (LIST/SET only)
        max_items: Maximum number of blocks (LIST/SET only, 0 = unlimited)
    """

    model_config = ConfigDict(frozen=True)

    nesting: NestingMode = Field(default=NestingMode.SINGLE, description="Nesting mode")
    block: BlockSchema = Field(description="Nested body schema")
    min_items: int = Field(default=0, ge=0, description="Minimum number of blocks")
    max_items: int = Field(default=0, ge=0, description="Maximum number of blocks (0 = no limit)")

    @model_validator(mode="after")
    def validate_item_bounds(self) -> NestedBlockSchema:
        if self.max_items and self.min_items > self.max_items:
            raise ValueError(
                f"min_items ({self.min_items}) cannot exceed max_items ({self.max_items})"
            )
        return self


class BlockSchema(BaseModel):
    """
    Schema of a block body.

    Attributes:
        attributes: Attribute name -> AttributeSchema
        block_types: Nested block type name -> NestedBlockSchema
    """

    model_config = ConfigDict(frozen=True)

    attributes: dict[str, AttributeSchema] = Field(default_factory=dict)
    block_types: dict[str, NestedBlockSchema] = Field(default_factory=dict)

    @model_validator(mode="after")
    def validate_unique_names(self) -> BlockSchema:
        clashes = set(self.attributes) & set(self.block_types)
        if clashes:
            raise ValueError(
                f"Names declared both as attribute and block type: {', '.join(sorted(clashes))}"
            )
        return self


NestedBlockSchema.model_rebuild()
