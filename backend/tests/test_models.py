import pytest
from pydantic import ValidationError

from config import Settings
from models.connection import DataverseConfig
from models.dataverse import AttributeRecord, EntityDefinitionRecord, ODataCollection, SolutionRecord
from models.diagram import ERDRequest, FormatConfig
from models.schema import Attribute, Schema, Table


def test_dataverse_config():
    config = DataverseConfig(environment_url="https://org.crm.dynamics.com/", access_token="abc")
    assert config.environment_url == "https://org.crm.dynamics.com"
    assert config.api_base_url == "https://org.crm.dynamics.com/api/data/v9.2"
    assert "abc" not in repr(config)

    with pytest.raises(ValidationError):
        config.access_token = "other"


def test_dataverse_config_requires_credentials():
    with pytest.raises(ValidationError):
        DataverseConfig(environment_url="https://org.crm.dynamics.com", access_token="")


def test_schema_is_frozen():
    schema = Schema(unique_name="Core", display_name="Core")
    assert schema.publisher_prefix == "unknown"
    assert schema.tables == ()
    with pytest.raises(ValidationError):
        schema.unique_name = "Other"


def test_schema_collections_are_immutable():
    table = Table(logical_name="account", display_name="Account", attributes=[
        Attribute(logical_name="accountid", display_name="Account", type="guid", is_primary_id=True),
    ])
    schema = Schema(unique_name="Core", display_name="Core", tables=[table])
    assert isinstance(schema.tables, tuple)
    assert isinstance(schema.tables[0].attributes, tuple)
    with pytest.raises(AttributeError):
        schema.tables.append(table)
    with pytest.raises(AttributeError):
        table.relationships.append(None)


def test_attribute_type_is_closed():
    with pytest.raises(ValidationError):
        Attribute(logical_name="x", display_name="X", type="varchar")


def test_attribute_record_defaults():
    rec = AttributeRecord.model_validate({
        "LogicalName": "emailaddress1",
        "DisplayName": {"UserLocalizedLabel": None},
        "AttributeType": "String",
        "IsPrimaryId": None,
        "RequiredLevel": None,
    })
    assert rec.display_label == "emailaddress1"
    assert rec.is_primary_id is False
    assert rec.is_primary_name is False
    assert rec.is_required is False
    assert rec.max_length is None


@pytest.mark.parametrize("level,required", [
    ("SystemRequired", True),
    ("ApplicationRequired", True),
    ("Recommended", False),
    ("None", False),
    (None, False),
])
def test_attribute_record_required_levels(level, required):
    rec = AttributeRecord.model_validate({"LogicalName": "x", "RequiredLevel": {"Value": level}})
    assert rec.is_required is required


def test_entity_record_display_label():
    rec = EntityDefinitionRecord.model_validate({
        "LogicalName": "account",
        "DisplayName": {"UserLocalizedLabel": {"Label": "Account"}},
        "TableType": "Standard",
        "Unexpected": 1,
    })
    assert rec.display_label == "Account"
    assert rec.primary_name_attribute is None


def test_solution_record_defaults():
    rec = SolutionRecord.model_validate({"uniquename": "Core", "friendlyname": None, "publisherid": None})
    assert rec.display_name == "Core"
    assert rec.publisher_prefix == "unknown"


def test_odata_collection():
    rows = ODataCollection[SolutionRecord].model_validate({
        "@odata.context": "https://org.crm.dynamics.com/api/data/v9.2/$metadata#solutions",
        "value": [{"uniquename": "A"}, {"uniquename": "B"}],
    }).value
    assert [r.uniquename for r in rows] == ["A", "B"]
    assert ODataCollection[SolutionRecord].model_validate({"value": None}).value == []


def test_erd_request_to_format_config():
    req = ERDRequest(solution_name="Core", format="graphviz", include_relationships=False)
    assert req.to_format_config() == FormatConfig(format="graphviz", include_relationships=False)

    with pytest.raises(ValidationError):
        ERDRequest(solution_name="Core", format="svg")
    with pytest.raises(ValidationError):
        FormatConfig(max_attributes_per_table=-1)


def test_erd_request_format_falls_back_to_default():
    req = ERDRequest(solution_name="Core")
    assert req.format is None
    assert req.to_format_config().format == "mermaid"
    assert req.to_format_config("plantuml").format == "plantuml"


def test_settings_reject_unknown_default_format():
    assert Settings(_env_file=None, DEFAULT_DIAGRAM_FORMAT="graphviz").DEFAULT_DIAGRAM_FORMAT == "graphviz"
    with pytest.raises(ValidationError):
        Settings(_env_file=None, DEFAULT_DIAGRAM_FORMAT="svg")
