"""
Schema fetcher — resolves a Dataverse solution into a normalized Schema.

Sequence:
  1. Resolve the solution (fatal if missing or unreachable)
  2. List its table components (fatal on failure)
  3. Fan out one task per distinct table, bounded by a semaphore; a table that
     fails is logged and dropped, the rest of the solution is still returned
  4. Per table: entity definition + attributes, then the three relationship
     collections and the string lengths concurrently (each one failing softly)
"""
import asyncio
import logging
from typing import Optional

from integrations.dataverse_client import DataverseClient, SolutionNotFoundError
from models.dataverse import AttributeRecord, ManyToManyRecord, OneToManyRecord
from models.schema import Attribute, AttributeType, Relationship, Schema, SolutionSummary, Table

logger = logging.getLogger(__name__)

DEFAULT_ATTRIBUTE_TYPE: AttributeType = "string"

# Dataverse AttributeType → simplified AttributeType (keys are case-sensitive)
VENDOR_TYPE_MAP: dict[str, AttributeType] = {
    "String":           "string",
    "Memo":             "string",
    "Integer":          "int",
    "BigInt":           "int",
    "Decimal":          "decimal",
    "Double":           "decimal",
    "Money":            "money",
    "DateTime":         "datetime",
    "Boolean":          "boolean",
    "Lookup":           "lookup",
    "Customer":         "lookup",
    "Owner":            "lookup",
    "Picklist":         "picklist",
    "State":            "picklist",
    "Status":           "picklist",
    "Uniqueidentifier": "guid",
}


def map_attribute_type(vendor_type: Optional[str]) -> AttributeType:
    return VENDOR_TYPE_MAP.get(vendor_type or "", DEFAULT_ATTRIBUTE_TYPE)


def to_attribute(rec: AttributeRecord, max_length: Optional[int] = None) -> Attribute:
    return Attribute(
        logical_name=rec.logical_name,
        display_name=rec.display_label,
        type=map_attribute_type(rec.attribute_type),
        is_primary_id=rec.is_primary_id,
        is_primary_name=rec.is_primary_name,
        is_required=rec.is_required,
        max_length=max_length if max_length is not None else rec.max_length,
    )


# ── Relationship filters ──────────────────────────────────────────────────────

def one_to_many_for(logical_name: str, rows: list[OneToManyRecord]) -> list[Relationship]:
    """Rows where this table is the referenced ("one") side."""
    return [
        Relationship(
            schema_name=r.schema_name,
            type="OneToMany",
            related_table=r.referencing_entity or "",
            lookup_attribute=r.referencing_attribute,
        )
        for r in rows
        if r.referenced_entity == logical_name
    ]


def many_to_one_for(logical_name: str, rows: list[OneToManyRecord]) -> list[Relationship]:
    """Rows where this table is the referencing ("many") side."""
    return [
        Relationship(
            schema_name=r.schema_name,
            type="ManyToOne",
            related_table=r.referenced_entity or "",
            lookup_attribute=r.referencing_attribute,
        )
        for r in rows
        if r.referencing_entity == logical_name
    ]


def many_to_many_for(logical_name: str, rows: list[ManyToManyRecord]) -> list[Relationship]:
    """Rows where this table is either side; related_table is the other side."""
    result = []
    for r in rows:
        if r.entity1_logical_name == logical_name:
            other = r.entity2_logical_name
        elif r.entity2_logical_name == logical_name:
            other = r.entity1_logical_name
        else:
            continue
        result.append(Relationship(
            schema_name=r.schema_name,
            type="ManyToMany",
            related_table=other or "",
            intersect_table=r.intersect_entity_name,
        ))
    return result


class SchemaFetcher:
    """Builds a Schema for one solution from a single DataverseClient."""

    def __init__(self, client: DataverseClient, max_parallel: Optional[int] = None):
        self.client = client
        self.max_parallel = max_parallel or client.config.max_parallel_table_fetches

    async def list_solutions(self) -> list[SolutionSummary]:
        """Visible solutions, sorted by display name."""
        rows = await self.client.list_solutions()
        solutions = [
            SolutionSummary(unique_name=r.uniquename, display_name=r.display_name, version=r.version or "")
            for r in rows
        ]
        return sorted(solutions, key=lambda s: (s.display_name.casefold(), s.unique_name))

    async def fetch_solution(self, unique_name: str) -> Schema:
        solution = await self.client.find_solution(unique_name)
        if solution is None:
            raise SolutionNotFoundError(unique_name)

        # a table can be listed more than once in the components
        table_ids = list(dict.fromkeys(await self.client.list_table_ids(solution.solutionid)))
        logger.info("Solution %s: %d table components", unique_name, len(table_ids))

        tables = await self._fetch_tables(table_ids)
        if len(tables) < len(table_ids):
            logger.warning(
                "Solution %s: %d of %d tables could not be fetched",
                unique_name, len(table_ids) - len(tables), len(table_ids),
            )

        return Schema(
            unique_name=solution.uniquename,
            display_name=solution.display_name,
            version=solution.version or "",
            publisher_prefix=solution.publisher_prefix,
            tables=tables,
        )

    async def _fetch_tables(self, table_ids: list[str]) -> list[Table]:
        semaphore = asyncio.Semaphore(self.max_parallel)

        async def bounded(table_id: str) -> Optional[Table]:
            async with semaphore:
                return await self._fetch_table(table_id)

        results = await asyncio.gather(*(bounded(tid) for tid in table_ids))
        tables: dict[str, Table] = {}
        for table in results:
            if table is not None:
                tables.setdefault(table.logical_name, table)
        return list(tables.values())

    async def _fetch_table(self, table_id: str) -> Optional[Table]:
        """Fetch one table; returns None (and logs) on any failure."""
        try:
            entity = await self.client.get_entity(table_id)
            attribute_rows = await self.client.get_attributes(table_id)
        except Exception as e:
            logger.warning("Failed to fetch table metadata for %s: %s", table_id, e)
            return None

        relationships, max_lengths = await asyncio.gather(
            self._fetch_relationships(table_id, entity.logical_name),
            self._soft(self.client.get_string_lengths(table_id), "string lengths", entity.logical_name, {}),
        )
        return Table(
            logical_name=entity.logical_name,
            display_name=entity.display_label,
            schema_name=entity.schema_name or entity.logical_name,
            primary_id_attribute=entity.primary_id_attribute,
            primary_name_attribute=entity.primary_name_attribute,
            table_type=entity.table_type,
            attributes=[to_attribute(a, max_lengths.get(a.logical_name)) for a in attribute_rows],
            relationships=relationships,
        )

    async def _fetch_relationships(self, table_id: str, logical_name: str) -> list[Relationship]:
        one_to_many, many_to_one, many_to_many = await asyncio.gather(
            self._soft(self.client.get_one_to_many(table_id), "one-to-many relationships", logical_name),
            self._soft(self.client.get_many_to_one(table_id), "many-to-one relationships", logical_name),
            self._soft(self.client.get_many_to_many(table_id), "many-to-many relationships", logical_name),
        )
        return (
            one_to_many_for(logical_name, one_to_many)
            + many_to_one_for(logical_name, many_to_one)
            + many_to_many_for(logical_name, many_to_many)
        )

    @staticmethod
    async def _soft(call, what: str, logical_name: str, default=None):
        try:
            return await call
        except Exception as e:
            logger.warning("Failed to fetch %s for %s: %s", what, logical_name, e)
            return [] if default is None else default
