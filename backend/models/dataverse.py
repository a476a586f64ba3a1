"""Pydantic records for raw Dataverse Web API (OData v4) payloads.

Every response shape the fetcher consumes is decoded here once, with the
defaults for optional fields kept in one place instead of at call sites.
"""
from typing import Generic, Optional, TypeVar
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_PUBLISHER_PREFIX = "unknown"
DEFAULT_REQUIRED_LEVEL = "None"
REQUIRED_LEVELS = frozenset({"ApplicationRequired", "SystemRequired"})

T = TypeVar("T")


class _Record(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ODataCollection(_Record, Generic[T]):
    """`{"value": [...]}` envelope returned by every collection endpoint."""
    value: list[T] = Field(default_factory=list)

    @field_validator("value", mode="before")
    @classmethod
    def _null_value(cls, v):
        return [] if v is None else v


# ── Labels ────────────────────────────────────────────────────────────────────

class LocalizedLabel(_Record):
    label: Optional[str] = Field(None, alias="Label")


class Label(_Record):
    user_localized_label: Optional[LocalizedLabel] = Field(None, alias="UserLocalizedLabel")

    @property
    def text(self) -> Optional[str]:
        if self.user_localized_label and self.user_localized_label.label:
            return self.user_localized_label.label
        return None


class RequiredLevel(_Record):
    value: str = Field(DEFAULT_REQUIRED_LEVEL, alias="Value")

    @field_validator("value", mode="before")
    @classmethod
    def _null_level(cls, v):
        return DEFAULT_REQUIRED_LEVEL if v is None else v


# ── Solutions ─────────────────────────────────────────────────────────────────

class PublisherRecord(_Record):
    customizationprefix: Optional[str] = None


class SolutionRecord(_Record):
    solutionid: str = ""
    uniquename: str
    friendlyname: Optional[str] = None
    version: Optional[str] = None
    publisherid: Optional[PublisherRecord] = None

    @property
    def display_name(self) -> str:
        return self.friendlyname or self.uniquename

    @property
    def publisher_prefix(self) -> str:
        if self.publisherid and self.publisherid.customizationprefix:
            return self.publisherid.customizationprefix
        return DEFAULT_PUBLISHER_PREFIX


class SolutionComponentRecord(_Record):
    objectid: str


# ── Entity metadata ───────────────────────────────────────────────────────────

class EntityDefinitionRecord(_Record):
    logical_name: str = Field(..., alias="LogicalName")
    display_name: Optional[Label] = Field(None, alias="DisplayName")
    schema_name: Optional[str] = Field(None, alias="SchemaName")
    primary_id_attribute: Optional[str] = Field(None, alias="PrimaryIdAttribute")
    primary_name_attribute: Optional[str] = Field(None, alias="PrimaryNameAttribute")
    table_type: Optional[str] = Field(None, alias="TableType")

    @property
    def display_label(self) -> str:
        return (self.display_name and self.display_name.text) or self.logical_name


class AttributeRecord(_Record):
    logical_name: str = Field(..., alias="LogicalName")
    display_name: Optional[Label] = Field(None, alias="DisplayName")
    attribute_type: Optional[str] = Field(None, alias="AttributeType")
    is_primary_id: bool = Field(False, alias="IsPrimaryId")
    is_primary_name: bool = Field(False, alias="IsPrimaryName")
    required_level: Optional[RequiredLevel] = Field(None, alias="RequiredLevel")
    max_length: Optional[int] = Field(None, alias="MaxLength")

    @field_validator("is_primary_id", "is_primary_name", mode="before")
    @classmethod
    def _null_flag(cls, v):
        return False if v is None else v

    @property
    def display_label(self) -> str:
        return (self.display_name and self.display_name.text) or self.logical_name

    @property
    def is_required(self) -> bool:
        level = self.required_level.value if self.required_level else DEFAULT_REQUIRED_LEVEL
        return level in REQUIRED_LEVELS


# ── Relationships ─────────────────────────────────────────────────────────────

class OneToManyRecord(_Record):
    """Shape shared by the OneToMany and ManyToOne collections."""
    schema_name: str = Field("", alias="SchemaName")
    referenced_entity: Optional[str] = Field(None, alias="ReferencedEntity")
    referencing_entity: Optional[str] = Field(None, alias="ReferencingEntity")
    referencing_attribute: Optional[str] = Field(None, alias="ReferencingAttribute")


class ManyToManyRecord(_Record):
    schema_name: str = Field("", alias="SchemaName")
    entity1_logical_name: Optional[str] = Field(None, alias="Entity1LogicalName")
    entity2_logical_name: Optional[str] = Field(None, alias="Entity2LogicalName")
    intersect_entity_name: Optional[str] = Field(None, alias="IntersectEntityName")


# ── Errors ────────────────────────────────────────────────────────────────────

class ODataErrorDetail(_Record):
    code: Optional[str] = None
    message: Optional[str] = None


class ODataErrorEnvelope(_Record):
    error: Optional[ODataErrorDetail] = None
