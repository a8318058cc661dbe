"""
ContentCore generic extraction.

- dom: selector queries, tree walking and layout estimation over BeautifulSoup
- content_processors: tables, lists, embeds and images
- quality: content quality assessment
- text_extractor: the default pipeline for pages no site adapter claims
"""

from .content_processors import EmbedProcessor, ImageProcessor, ListProcessor, TableProcessor
from .quality import QualityAssessor
from .text_extractor import TextExtractor, build_sections, compose_content, extract_title

__all__ = [
    "EmbedProcessor",
    "ImageProcessor",
    "ListProcessor",
    "QualityAssessor",
    "TableProcessor",
    "TextExtractor",
    "build_sections",
    "compose_content",
    "extract_title",
]
