"""
Per-format syntax for the ERD renderer.

Each dialect owns its document framing, attribute type tokens, key markers,
cardinality notation and escaping. Table identifiers arrive already sanitized.
Mermaid and PlantUML are written line by line; Graphviz is built as a
graphviz.Digraph and returned as its DOT source.
"""
import re
from dataclasses import dataclass
from typing import Literal

import graphviz

from models.schema import Attribute, Schema, Table

_ILLEGAL_CHARS = re.compile(r"[^A-Za-z0-9_]")
_LEGAL_START = re.compile(r"[A-Za-z_]")


def sanitize_identifier(name: str) -> str:
    """Make `name` a legal identifier in every supported diagram syntax.

    account          → account
    new_project-task → new_project_task
    1stparty         → _1stparty
    """
    cleaned = _ILLEGAL_CHARS.sub("_", name)
    if not _LEGAL_START.match(cleaned):
        cleaned = "_" + cleaned
    return cleaned


@dataclass(frozen=True, order=True)
class Edge:
    """One relationship line after mirrored entries have been merged.

    one_to_many: left is the referenced ("one") table, right the referencing one.
    many_to_many: left/right are the two tables in sorted order.
    """
    left: str
    right: str
    kind: Literal["one_to_many", "many_to_many"]
    schema_name: str
    label: str = ""


# (table, sanitized identifier, attributes to show)
EntityBlock = tuple[Table, str, list[Attribute]]
# (edge, sanitized left, sanitized right)
EdgeLine = tuple[Edge, str, str]


def _one_line(text: str) -> str:
    return " ".join(text.split())


def _schema_title(schema: Schema) -> str:
    title = _one_line(schema.display_name or schema.unique_name)
    return f"{title} (v{schema.version})" if schema.version else title


class Dialect:
    name = ""
    type_tokens: dict[str, str] = {}

    def type_token(self, attr: Attribute) -> str:
        token = self.type_tokens.get(attr.type, "string")
        return f"{token}({attr.max_length})" if attr.max_length else token

    def document(self, schema: Schema, entities: list[EntityBlock], edges: list[EdgeLine]) -> str:
        """Assemble the whole diagram from begin/entity/edge/end lines."""
        lines = list(self.begin(schema))
        for table, ident, attrs in entities:
            lines.extend(self.entity(table, ident, attrs))
        if edges:
            lines.extend(self.relationships_header())
        lines.extend(self.edge(edge, left, right) for edge, left, right in edges)
        lines.extend(self.end())
        return "\n".join(lines) + "\n"

    def begin(self, schema: Schema) -> list[str]:
        return []

    def end(self) -> list[str]:
        return []

    def entity(self, table: Table, ident: str, attrs: list[Attribute]) -> list[str]:
        raise NotImplementedError

    def relationships_header(self) -> list[str]:
        return []

    def edge(self, edge: Edge, left: str, right: str) -> str:
        raise NotImplementedError


# ── Mermaid ───────────────────────────────────────────────────────────────────

class MermaidDialect(Dialect):
    name = "mermaid"
    type_tokens = {
        "string":   "string",
        "int":      "int",
        "decimal":  "decimal",
        "money":    "money",
        "datetime": "datetime",
        "boolean":  "boolean",
        "lookup":   "guid",
        "picklist": "int",
        "guid":     "guid",
    }

    @staticmethod
    def _quote(text: str) -> str:
        return '"' + _one_line(text).replace('"', "'") + '"'

    def begin(self, schema):
        return [
            "erDiagram",
            f"    %% {_schema_title(schema)}, publisher prefix: {_one_line(schema.publisher_prefix)}",
        ]

    def entity(self, table, ident, attrs):
        lines = [f"    {ident} {{"]
        for a in attrs:
            keys = []
            if a.is_primary_id:
                keys.append("PK")
            if a.type == "lookup":
                keys.append("FK")
            notes = [a.display_name]
            if a.is_primary_name:
                notes.append("primary name")
            if a.is_required and not a.is_primary_id:
                notes.append("required")
            key_str = f" {', '.join(keys)}" if keys else ""
            lines.append(
                f"        {self.type_token(a)} {sanitize_identifier(a.logical_name)}{key_str} "
                f"{self._quote(', '.join(notes))}"
            )
        lines.append("    }")
        return lines

    def edge(self, edge, left, right):
        arrow = "}o--o{" if edge.kind == "many_to_many" else "||--o{"
        return f"    {left} {arrow} {right} : {self._quote(edge.label or edge.schema_name)}"


# ── PlantUML ──────────────────────────────────────────────────────────────────

class PlantUMLDialect(Dialect):
    name = "plantuml"
    type_tokens = {
        "string":   "string",
        "int":      "integer",
        "decimal":  "decimal",
        "money":    "money",
        "datetime": "datetime",
        "boolean":  "boolean",
        "lookup":   "lookup",
        "picklist": "choice",
        "guid":     "uniqueidentifier",
    }

    def begin(self, schema):
        return [
            "@startuml",
            f"title {_schema_title(schema)}",
            "hide circle",
            "skinparam linetype ortho",
            "",
        ]

    def end(self):
        return ["@enduml"]

    def _attribute_row(self, a: Attribute) -> str:
        stereotypes = []
        if a.is_primary_id:
            stereotypes.append("<<PK>>")
        if a.is_primary_name:
            stereotypes.append("<<PN>>")
        if a.type == "lookup":
            stereotypes.append("<<FK>>")
        mandatory = "* " if a.is_required or a.is_primary_id else ""
        suffix = f" {' '.join(stereotypes)}" if stereotypes else ""
        return f"  {mandatory}{a.logical_name} : {self.type_token(a)}{suffix}"

    def entity(self, table, ident, attrs):
        title = _one_line(table.display_name).replace('"', "'")
        lines = [f'entity "{title}" as {ident} {{']
        keys = [a for a in attrs if a.is_primary_id]
        rest = [a for a in attrs if not a.is_primary_id]
        lines.extend(self._attribute_row(a) for a in keys)
        if keys and rest:
            lines.append("  --")
        lines.extend(self._attribute_row(a) for a in rest)
        lines.extend(["}", ""])
        return lines

    def edge(self, edge, left, right):
        arrow = "}o--o{" if edge.kind == "many_to_many" else "||--o{"
        label = _one_line(edge.label or edge.schema_name)
        return f"{left} {arrow} {right} : {label}" if label else f"{left} {arrow} {right}"


# ── Graphviz ──────────────────────────────────────────────────────────────────

class GraphvizDialect(Dialect):
    name = "graphviz"
    type_tokens = {
        "string":   "string",
        "int":      "int",
        "decimal":  "decimal",
        "money":    "money",
        "datetime": "datetime",
        "boolean":  "bool",
        "lookup":   "lookup",
        "picklist": "choice",
        "guid":     "guid",
    }

    @staticmethod
    def _record_escape(text: str) -> str:
        # graphviz quotes the label but leaves record field syntax alone
        out = _one_line(text)
        for ch in "{}|<>":
            out = out.replace(ch, "\\" + ch)
        return out

    def _attribute_row(self, a: Attribute) -> str:
        markers = []
        if a.is_primary_id:
            markers.append("PK")
        if a.is_primary_name:
            markers.append("PN")
        if a.type == "lookup":
            markers.append("FK")
        marker = f" [{','.join(markers)}]" if markers else ""
        return self._record_escape(f"{a.logical_name} : {self.type_token(a)}{marker}") + "\\l"

    def record_label(self, table: Table, attrs: list[Attribute]) -> str:
        header = self._record_escape(table.display_name)
        if table.display_name != table.logical_name:
            header += "\\n" + self._record_escape(f"({table.logical_name})")
        body = "".join(self._attribute_row(a) for a in attrs)
        return f"{{{header}|{body}}}" if attrs else f"{{{header}}}"

    def document(self, schema, entities, edges):
        dot = graphviz.Digraph(name="ERD")
        dot.attr("graph", rankdir="LR", labelloc="t", fontname="Helvetica",
                 label=graphviz.nohtml(_schema_title(schema)))
        dot.attr("node", shape="record", fontname="Helvetica", fontsize="10")
        dot.attr("edge", fontname="Helvetica", fontsize="9")

        for table, ident, attrs in entities:
            dot.node(ident, label=self.record_label(table, attrs))

        for edge, left, right in edges:
            dot.edge(
                left, right,
                label=graphviz.nohtml(_one_line(edge.label or edge.schema_name)),
                dir="both",
                arrowtail="crow" if edge.kind == "many_to_many" else "tee",
                arrowhead="crow",
            )
        return dot.source


DIALECTS: dict[str, Dialect] = {
    d.name: d for d in (MermaidDialect(), PlantUMLDialect(), GraphvizDialect())
}
