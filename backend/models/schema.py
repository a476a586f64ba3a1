"""Pydantic schemas for the normalized solution model.

A Schema is built once per fetch and handed to the renderer as-is, so every
model here is frozen and collections are tuples.
"""
from typing import Optional, Literal
from pydantic import BaseModel, ConfigDict

AttributeType = Literal[
    "string", "int", "decimal", "money", "datetime",
    "boolean", "lookup", "picklist", "guid",
]
RelationshipType = Literal["OneToMany", "ManyToOne", "ManyToMany"]


class Attribute(BaseModel):
    model_config = ConfigDict(frozen=True)

    logical_name: str
    display_name: str
    type: AttributeType = "string"
    is_primary_id: bool = False
    is_primary_name: bool = False
    is_required: bool = False
    max_length: Optional[int] = None


class Relationship(BaseModel):
    model_config = ConfigDict(frozen=True)

    schema_name: str
    type: RelationshipType
    related_table: str
    lookup_attribute: Optional[str] = None   # OneToMany / ManyToOne only
    intersect_table: Optional[str] = None    # ManyToMany only


class Table(BaseModel):
    model_config = ConfigDict(frozen=True)

    logical_name: str
    display_name: str
    schema_name: str = ""
    primary_id_attribute: Optional[str] = None
    primary_name_attribute: Optional[str] = None
    table_type: Optional[str] = None
    attributes: tuple[Attribute, ...] = ()
    relationships: tuple[Relationship, ...] = ()


class Schema(BaseModel):
    model_config = ConfigDict(frozen=True)

    unique_name: str
    display_name: str
    version: str = ""
    publisher_prefix: str = "unknown"
    tables: tuple[Table, ...] = ()


class SolutionSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    unique_name: str
    display_name: str
    version: str = ""
