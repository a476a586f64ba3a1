#!/usr/bin/env python3
"""
Render the CustomerManagement sample solution in every diagram format.
Usage (from the repository root):
    python scripts/render_sample.py
Creates: scripts/output/CustomerManagement_erd.{mmd,puml,dot}
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "backend"))

from core.erd_renderer import render, suggested_file_name  # noqa: E402
from models.diagram import FILE_EXTENSIONS, FormatConfig  # noqa: E402
from models.schema import Attribute, Relationship, Schema, Table  # noqa: E402

OUTPUT_DIR = Path(__file__).parent / "output"

SAMPLE = Schema(
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
                Attribute(logical_name="revenue", display_name="Annual Revenue", type="money"),
            ],
            relationships=[
                Relationship(schema_name="contact_customer_accounts", type="OneToMany",
                             related_table="contact", lookup_attribute="parentcustomerid"),
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
                Attribute(logical_name="parentcustomerid", display_name="Company Name", type="lookup"),
                Attribute(logical_name="birthdate", display_name="Birthday", type="datetime"),
            ],
            relationships=[
                Relationship(schema_name="contact_customer_accounts", type="ManyToOne",
                             related_table="account", lookup_attribute="parentcustomerid"),
            ],
        ),
    ],
)


def main():
    OUTPUT_DIR.mkdir(exist_ok=True)
    for fmt in FILE_EXTENSIONS:
        path = OUTPUT_DIR / suggested_file_name(SAMPLE, fmt)
        path.write_text(render(SAMPLE, FormatConfig(format=fmt)), encoding="utf-8")
        print(f"✓ {fmt:<8} → {path}")
    print("\nPreview with the Mermaid extension, `plantuml *.puml`, or `dot -Tpng *.dot -O`.")


if __name__ == "__main__":
    main()
