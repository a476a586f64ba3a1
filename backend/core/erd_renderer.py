"""
ERD renderer — projects a Schema into Mermaid, PlantUML or Graphviz source.

One traversal drives all three formats; the per-format syntax lives in
core.dialects. Rendering is pure: no I/O, no state kept between calls, and the
same Schema + FormatConfig always yields the same text.
"""
import logging
from typing import Optional

from core.dialects import DIALECTS, Dialect, Edge, sanitize_identifier
from models.diagram import FILE_EXTENSIONS, DiagramFormat, FormatConfig
from models.schema import Attribute, Schema, Table

logger = logging.getLogger(__name__)


def collect_edges(schema: Schema) -> list[Edge]:
    """Merge every table's relationship entries into a sorted, duplicate-free edge list.

    A OneToMany entry on A pointing at B and the ManyToOne entry on B pointing at
    A describe the same lookup; both canonicalize to (A → B, schema_name), and the
    first one seen is kept.
    """
    edges: dict[tuple, Edge] = {}
    for table in schema.tables:
        for rel in table.relationships:
            if rel.type == "ManyToMany":
                left, right = sorted((table.logical_name, rel.related_table))
                kind = "many_to_many"
                label = rel.intersect_table or rel.schema_name
            elif rel.type == "OneToMany":
                left, right = table.logical_name, rel.related_table
                kind = "one_to_many"
                label = rel.schema_name or rel.lookup_attribute or ""
            else:  # ManyToOne
                left, right = rel.related_table, table.logical_name
                kind = "one_to_many"
                label = rel.schema_name or rel.lookup_attribute or ""
            key = (kind, left, right, rel.schema_name)
            if key not in edges:
                edges[key] = Edge(left=left, right=right, kind=kind, schema_name=rel.schema_name, label=label)
    return sorted(edges.values())


def ordered_attributes(table: Table, limit: Optional[int] = None) -> list[Attribute]:
    """Primary id first, primary name second, the rest in source order."""
    ranked = sorted(
        enumerate(table.attributes),
        key=lambda pair: (not pair[1].is_primary_id, not pair[1].is_primary_name, pair[0]),
    )
    attrs = [a for _, a in ranked]
    return attrs if limit is None else attrs[:limit]


def render(schema: Schema, config: FormatConfig) -> str:
    """Render `schema` as a complete diagram document in `config.format`."""
    dialect: Dialect = DIALECTS[config.format]

    entities = [
        (
            table,
            sanitize_identifier(table.logical_name),
            ordered_attributes(table, config.max_attributes_per_table) if config.include_attributes else [],
        )
        for table in sorted(schema.tables, key=lambda t: t.logical_name)
    ]
    edges = [
        (edge, sanitize_identifier(edge.left), sanitize_identifier(edge.right))
        for edge in (collect_edges(schema) if config.include_relationships else [])
    ]

    text = dialect.document(schema, entities, edges)
    logger.debug(
        "Rendered %s as %s: %d entities, %d edges", schema.unique_name, config.format, len(entities), len(edges),
    )
    return text


def relationship_count(schema: Schema) -> int:
    return len(collect_edges(schema))


def suggested_file_name(schema: Schema, fmt: DiagramFormat) -> str:
    return f"{sanitize_identifier(schema.unique_name)}_erd.{FILE_EXTENSIONS[fmt]}"
