"""
Parsers - canonical YAML form of metadata records.
"""

from .yaml_codec import (
    ArchiveDumper,
    parse,
    parse_document,
    serialize,
    serialize_record,
    to_document,
)


__all__ = [
    "ArchiveDumper",
    "parse",
    "parse_document",
    "serialize",
    "serialize_record",
    "to_document",
]
