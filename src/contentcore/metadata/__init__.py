"""
Page metadata and structured data extraction.
"""

from .metadata_extractor import MetadataExtractor, parse_date
from .structured_data_parser import OpenGraphParser, SchemaOrgParser, TwitterCardParser, parse_structured_data

__all__ = [
    "MetadataExtractor",
    "OpenGraphParser",
    "SchemaOrgParser",
    "TwitterCardParser",
    "parse_date",
    "parse_structured_data",
]
