from .text_analysis import (
    TextAnalyzers,
    analyze_sentiment,
    calculate_readability,
    detect_language,
    extract_entities,
    reading_ease,
    split_sentences,
    summarize,
)

__all__ = [
    "TextAnalyzers",
    "analyze_sentiment",
    "calculate_readability",
    "detect_language",
    "extract_entities",
    "reading_ease",
    "split_sentences",
    "summarize",
]
