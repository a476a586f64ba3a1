import os
import sys

# Add the parent directory (backend) to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import asyncio
import re
from urllib.parse import unquote

import httpx
import pytest
from fastapi.testclient import TestClient

from main import app
from integrations.dataverse_client import DataverseClient
from models.connection import DataverseConfig
from models.schema import Attribute, Relationship, Schema, Table

DATAVERSE_URL = "https://contoso.crm.dynamics.com"
API_PREFIX = "/api/data/v9.2"
AUTH_HEADERS = {"X-Dataverse-Url": DATAVERSE_URL, "Authorization": "Bearer test-token"}


def label(text):
    return {"UserLocalizedLabel": {"Label": text}}


def attr(name, attr_type, display=None, primary_id=False, primary_name=False, required="None", max_length=None):
    row = {
        "LogicalName": name,
        "DisplayName": label(display) if display else {"UserLocalizedLabel": None},
        "AttributeType": attr_type,
        "IsPrimaryId": primary_id,
        "IsPrimaryName": primary_name,
        "RequiredLevel": {"Value": required},
    }
    if max_length is not None:
        row["MaxLength"] = max_length
    return row


def one_to_many(schema_name, referenced, referencing, attribute):
    return {
        "SchemaName": schema_name,
        "ReferencedEntity": referenced,
        "ReferencingEntity": referencing,
        "ReferencingAttribute": attribute,
    }


def many_to_many(schema_name, entity1, entity2, intersect):
    return {
        "SchemaName": schema_name,
        "Entity1LogicalName": entity1,
        "Entity2LogicalName": entity2,
        "IntersectEntityName": intersect,
    }


class FakeDataverse:
    """In-memory stand-in for the Dataverse Web API, served through httpx.MockTransport."""

    def __init__(self):
        self.solutions: list[dict] = []
        self.components: dict[str, list[str]] = {}
        self.entities: dict[str, dict] = {}
        self.attributes: dict[str, list[dict]] = {}
        self.relationships: dict[tuple[str, str], list[dict]] = {}
        self.failures: dict[str, int] = {}     # request path → status code
        self.requests: list[httpx.Request] = []
        self.delay = 0.0
        self._entity_in_flight = 0
        self.max_entity_in_flight = 0

    def add_solution(self, solution_id, unique_name, friendly_name, version="1.0.0.0", prefix="cust", table_ids=()):
        row = {
            "solutionid": solution_id,
            "uniquename": unique_name,
            "friendlyname": friendly_name,
            "version": version,
            "publisherid": {"customizationprefix": prefix} if prefix is not None else None,
        }
        self.solutions.append(row)
        self.components[solution_id] = list(table_ids)

    def add_table(self, table_id, logical_name, display_name, attributes,
                  one_to_many_rows=(), many_to_one_rows=(), many_to_many_rows=()):
        self.entities[table_id] = {
            "LogicalName": logical_name,
            "DisplayName": label(display_name),
            "SchemaName": logical_name.capitalize(),
            "PrimaryIdAttribute": f"{logical_name}id",
            "PrimaryNameAttribute": "name",
            "TableType": "Standard",
        }
        self.attributes[table_id] = list(attributes)
        self.relationships[(table_id, "OneToManyRelationships")] = list(one_to_many_rows)
        self.relationships[(table_id, "ManyToOneRelationships")] = list(many_to_one_rows)
        self.relationships[(table_id, "ManyToManyRelationships")] = list(many_to_many_rows)

    def fail(self, path, status=500):
        self.failures[path] = status

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = unquote(request.url.path)[len(API_PREFIX):]
        if path in self.failures:
            return httpx.Response(self.failures[path], json={"error": {"code": "0x80040217", "message": "boom"}})

        flt = request.url.params.get("$filter", "")
        if path == "/solutions":
            m = re.search(r"uniquename eq '((?:[^']|'')*)'", flt)
            if m:
                name = m.group(1).replace("''", "'")
                rows = [s for s in self.solutions if s["uniquename"] == name]
            else:
                rows = list(self.solutions)
            return httpx.Response(200, json={"value": rows})

        if path == "/solutioncomponents":
            solution_id = re.search(r"_solutionid_value eq (\S+)", flt).group(1)
            ids = self.components.get(solution_id, [])
            return httpx.Response(200, json={"value": [{"objectid": i} for i in ids]})

        m = re.fullmatch(r"/EntityDefinitions\(([^)]+)\)(?:/(\w+)(?:/([\w.]+))?)?", path)
        if m:
            table_id, sub, cast = m.groups()
            if sub is None:
                return await self._entity(table_id)
            if sub == "Attributes":
                return httpx.Response(200, json={"value": self._attributes(table_id, cast)})
            return httpx.Response(200, json={"value": self.relationships.get((table_id, sub), [])})

        if path == "/WhoAmI":
            return httpx.Response(200, json={"UserId": "00000000-0000-0000-0000-000000000001"})
        return httpx.Response(404, json={"error": {"message": f"Resource not found: {path}"}})

    def _attributes(self, table_id, cast):
        rows = self.attributes.get(table_id, [])
        if cast == "Microsoft.Dynamics.CRM.StringAttributeMetadata":
            return [{"LogicalName": r["LogicalName"], "MaxLength": r["MaxLength"]} for r in rows if "MaxLength" in r]
        # MaxLength is not a property of the base attribute type
        return [{k: v for k, v in r.items() if k != "MaxLength"} for r in rows]

    async def _entity(self, table_id):
        self._entity_in_flight += 1
        self.max_entity_in_flight = max(self.max_entity_in_flight, self._entity_in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        finally:
            self._entity_in_flight -= 1
        if table_id not in self.entities:
            return httpx.Response(404, json={"error": {"message": f"Entity {table_id} does not exist"}})
        return httpx.Response(200, json=self.entities[table_id])

    def client(self, **config_overrides) -> DataverseClient:
        config = DataverseConfig(environment_url=DATAVERSE_URL, access_token="test-token", **config_overrides)
        return DataverseClient(config, transport=httpx.MockTransport(self.handler))


@pytest.fixture(scope="session")
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def fake_dataverse():
    return FakeDataverse()


@pytest.fixture
def customer_management(fake_dataverse):
    """Dataverse holding the CustomerManagement solution: account 1:N contact."""
    fake_dataverse.add_solution("sol-1", "CustomerManagement", "Customer Management", table_ids=["t-account", "t-contact"])
    fake_dataverse.add_table(
        "t-account", "account", "Account",
        [
            attr("accountid", "Uniqueidentifier", "Account", primary_id=True, required="SystemRequired"),
            attr("name", "String", "Account Name", primary_name=True, required="ApplicationRequired", max_length=160),
            attr("revenue", "Money", "Annual Revenue"),
        ],
        one_to_many_rows=[
            one_to_many("contact_customer_accounts", "account", "contact", "parentcustomerid"),
            one_to_many("account_parent_account", "account", "account", "parentaccountid"),
        ],
        many_to_one_rows=[
            one_to_many("account_parent_account", "account", "account", "parentaccountid"),
            one_to_many("contact_customer_accounts", "account", "contact", "parentcustomerid"),
        ],
    )
    fake_dataverse.add_table(
        "t-contact", "contact", "Contact",
        [
            attr("contactid", "Uniqueidentifier", "Contact", primary_id=True, required="SystemRequired"),
            attr("fullname", "String", "Full Name", primary_name=True),
            attr("parentcustomerid", "Customer", "Company Name"),
            attr("msdyn_gdproptout", "Virtual"),
        ],
        many_to_one_rows=[
            one_to_many("contact_customer_accounts", "account", "contact", "parentcustomerid"),
        ],
        many_to_many_rows=[
            many_to_many("contactleads_association", "contact", "lead", "contactleads"),
            many_to_many("accountleads_association", "account", "lead", "accountleads"),
        ],
    )
    return fake_dataverse


@pytest.fixture
def sample_schema():
    """The CustomerManagement scenario: account 1:N contact, recorded on account only."""
    return Schema(
        unique_name="CustomerManagement",
        display_name="Customer Management",
        version="1.0.0.0",
        publisher_prefix="cust",
        tables=[
            Table(
                logical_name="account",
                display_name="Account",
                schema_name="Account",
                primary_id_attribute="accountid",
                primary_name_attribute="name",
                table_type="Standard",
                attributes=[
                    Attribute(logical_name="accountid", display_name="Account", type="guid",
                              is_primary_id=True, is_required=True),
                    Attribute(logical_name="name", display_name="Account Name", type="string",
                              is_primary_name=True, is_required=True, max_length=160),
                ],
                relationships=[
                    Relationship(schema_name="account_contact", type="OneToMany", related_table="contact"),
                ],
            ),
            Table(
                logical_name="contact",
                display_name="Contact",
                schema_name="Contact",
                primary_id_attribute="contactid",
                primary_name_attribute="fullname",
                table_type="Standard",
                attributes=[
                    Attribute(logical_name="contactid", display_name="Contact", type="guid",
                              is_primary_id=True, is_required=True),
                    Attribute(logical_name="fullname", display_name="Full Name", type="string",
                              is_primary_name=True, max_length=160),
                ],
            ),
        ],
    )
