from core.schema_fetcher import SchemaFetcher, map_attribute_type  # noqa: F401
from core.erd_renderer import render, sanitize_identifier, suggested_file_name  # noqa: F401
