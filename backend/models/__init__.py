from models.schema import Schema, Table, Attribute, Relationship, SolutionSummary  # noqa: F401
from models.diagram import FormatConfig, ERDRequest, ERDResponse  # noqa: F401
from models.connection import DataverseConfig  # noqa: F401
