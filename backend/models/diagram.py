"""Pydantic schemas for diagram rendering options and the ERD API."""
from typing import Optional, Literal
from pydantic import BaseModel, ConfigDict, Field

DiagramFormat = Literal["mermaid", "plantuml", "graphviz"]

FILE_EXTENSIONS: dict[str, str] = {
    "mermaid": "mmd",
    "plantuml": "puml",
    "graphviz": "dot",
}


class FormatConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    format: DiagramFormat = "mermaid"
    include_attributes: bool = True
    include_relationships: bool = True
    max_attributes_per_table: Optional[int] = Field(None, ge=0)


class ERDRequest(BaseModel):
    solution_name: str = Field(..., min_length=1, description="Unique name of the Dataverse solution")
    format: Optional[DiagramFormat] = Field(None, description="Defaults to DEFAULT_DIAGRAM_FORMAT")
    include_attributes: bool = True
    include_relationships: bool = True
    max_attributes_per_table: Optional[int] = Field(None, ge=0)

    def to_format_config(self, default_format: DiagramFormat = "mermaid") -> FormatConfig:
        return FormatConfig(
            format=self.format or default_format,
            include_attributes=self.include_attributes,
            include_relationships=self.include_relationships,
            max_attributes_per_table=self.max_attributes_per_table,
        )


class ERDResponse(BaseModel):
    solution_name: str
    format: DiagramFormat
    file_name: str
    table_count: int
    relationship_count: int
    diagram: str
