"""
Dataverse integration client.
Wraps the read-only parts of the Dataverse Web API (OData v4) that describe a
solution: solutions, solution components, entity, attribute and relationship
definitions. Every call returns a decoded record from models.dataverse.
"""
import logging
from typing import Optional, TypeVar
import httpx
from pydantic import BaseModel, ValidationError

from models.connection import DataverseConfig
from models.dataverse import (
    AttributeRecord,
    EntityDefinitionRecord,
    ManyToManyRecord,
    ODataCollection,
    ODataErrorEnvelope,
    OneToManyRecord,
    SolutionComponentRecord,
    SolutionRecord,
)

logger = logging.getLogger(__name__)

TABLE_COMPONENT_TYPE = 1
STRING_ATTRIBUTE_CAST = "Microsoft.Dynamics.CRM.StringAttributeMetadata"

_SOLUTION_SELECT = "friendlyname,uniquename,_publisherid_value,version"
_ENTITY_SELECT = "LogicalName,DisplayName,SchemaName,PrimaryIdAttribute,PrimaryNameAttribute,TableType"
_ATTRIBUTE_SELECT = "LogicalName,DisplayName,AttributeType,IsPrimaryId,IsPrimaryName,RequiredLevel"
_ONE_TO_MANY_SELECT = "SchemaName,ReferencedEntity,ReferencingEntity,ReferencingAttribute"
_MANY_TO_MANY_SELECT = "SchemaName,Entity1LogicalName,Entity2LogicalName,IntersectEntityName"

R = TypeVar("R", bound=BaseModel)


# ── Errors ────────────────────────────────────────────────────────────────────

class DataverseError(Exception):
    """Base class for every error raised by the Dataverse client."""


class UpstreamError(DataverseError):
    """Non-success response (or no response at all) from the Web API."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"Dataverse API error: {status_code} - {message}")


class AuthError(UpstreamError):
    """The access token was rejected (401/403)."""


class SolutionNotFoundError(DataverseError):
    def __init__(self, unique_name: str):
        self.unique_name = unique_name
        super().__init__(f"Solution '{unique_name}' not found")


def _odata_literal(value: str) -> str:
    """Quote a string for use inside an OData $filter expression."""
    return "'" + value.replace("'", "''") + "'"


def _error_message(resp: httpx.Response) -> str:
    try:
        envelope = ODataErrorEnvelope.model_validate(resp.json())
        if envelope.error and envelope.error.message:
            return envelope.error.message
    except (ValueError, ValidationError):
        pass
    return resp.text.strip()[:200] or resp.reason_phrase


def _headers(config: DataverseConfig) -> dict:
    return {
        "Authorization": f"Bearer {config.access_token}",
        "Accept": "application/json",
        "Content-Type": "application/json",
        "OData-MaxVersion": "4.0",
        "OData-Version": "4.0",
    }


class DataverseClient:
    """Thin async wrapper around the Dataverse Web API."""

    def __init__(self, config: DataverseConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.client = httpx.AsyncClient(
            base_url=config.api_base_url,
            headers=_headers(config),
            timeout=config.timeout_seconds,
            transport=transport,
        )

    async def _get(self, path: str, params: Optional[dict] = None) -> dict:
        logger.debug("GET %s %s", path, params or "")
        try:
            resp = await self.client.get(path, params=params)
        except httpx.HTTPError as e:
            raise UpstreamError(0, f"{type(e).__name__}: {e}") from e

        if resp.status_code in (401, 403):
            raise AuthError(resp.status_code, _error_message(resp))
        if not resp.is_success:
            raise UpstreamError(resp.status_code, _error_message(resp))
        try:
            return resp.json()
        except ValueError as e:
            raise UpstreamError(resp.status_code, f"Invalid JSON in response: {e}") from e

    async def _get_record(self, model: type[R], path: str, params: Optional[dict] = None) -> R:
        data = await self._get(path, params)
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise UpstreamError(200, f"Unexpected {model.__name__} payload: {e}") from e

    async def _get_collection(self, model: type[R], path: str, params: Optional[dict] = None) -> list[R]:
        data = await self._get(path, params)
        try:
            return ODataCollection[model].model_validate(data).value
        except ValidationError as e:
            raise UpstreamError(200, f"Unexpected {model.__name__} collection: {e}") from e

    # ── Solutions ─────────────────────────────────────────────────────────────

    async def find_solution(self, unique_name: str) -> Optional[SolutionRecord]:
        """Return the solution with this unique name, or None."""
        rows = await self._get_collection(
            SolutionRecord,
            "/solutions",
            params={
                "$filter": f"uniquename eq {_odata_literal(unique_name)}",
                "$select": _SOLUTION_SELECT,
                "$expand": "publisherid($select=customizationprefix)",
            },
        )
        return rows[0] if rows else None

    async def list_solutions(self) -> list[SolutionRecord]:
        return await self._get_collection(
            SolutionRecord,
            "/solutions",
            params={
                "$select": "uniquename,friendlyname,version",
                "$filter": "isvisible eq true",
                "$orderby": "friendlyname asc",
            },
        )

    async def list_table_ids(self, solution_id: str) -> list[str]:
        """Return the EntityDefinition ids of every table component in a solution."""
        rows = await self._get_collection(
            SolutionComponentRecord,
            "/solutioncomponents",
            params={
                "$filter": f"_solutionid_value eq {solution_id} and componenttype eq {TABLE_COMPONENT_TYPE}",
                "$select": "objectid",
            },
        )
        return [r.objectid for r in rows]

    # ── Entity metadata ───────────────────────────────────────────────────────

    async def get_entity(self, table_id: str) -> EntityDefinitionRecord:
        return await self._get_record(
            EntityDefinitionRecord,
            f"/EntityDefinitions({table_id})",
            params={"$select": _ENTITY_SELECT},
        )

    async def get_attributes(self, table_id: str) -> list[AttributeRecord]:
        return await self._get_collection(
            AttributeRecord,
            f"/EntityDefinitions({table_id})/Attributes",
            params={"$select": _ATTRIBUTE_SELECT},
        )

    async def get_string_lengths(self, table_id: str) -> dict[str, int]:
        """MaxLength of every string attribute, keyed by logical name.

        MaxLength only exists on the derived StringAttributeMetadata type, so it
        needs its own cast query.
        """
        rows = await self._get_collection(
            AttributeRecord,
            f"/EntityDefinitions({table_id})/Attributes/{STRING_ATTRIBUTE_CAST}",
            params={"$select": "LogicalName,MaxLength"},
        )
        return {r.logical_name: r.max_length for r in rows if r.max_length is not None}

    async def get_one_to_many(self, table_id: str) -> list[OneToManyRecord]:
        return await self._get_collection(
            OneToManyRecord,
            f"/EntityDefinitions({table_id})/OneToManyRelationships",
            params={"$select": _ONE_TO_MANY_SELECT},
        )

    async def get_many_to_one(self, table_id: str) -> list[OneToManyRecord]:
        return await self._get_collection(
            OneToManyRecord,
            f"/EntityDefinitions({table_id})/ManyToOneRelationships",
            params={"$select": _ONE_TO_MANY_SELECT},
        )

    async def get_many_to_many(self, table_id: str) -> list[ManyToManyRecord]:
        return await self._get_collection(
            ManyToManyRecord,
            f"/EntityDefinitions({table_id})/ManyToManyRelationships",
            params={"$select": _MANY_TO_MANY_SELECT},
        )

    # ── Health ────────────────────────────────────────────────────────────────

    async def who_am_i(self) -> dict:
        return await self._get("/WhoAmI")

    async def aclose(self):
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *_):
        await self.aclose()
