"""
Natural-language analysis used to enrich extracted content.

Each analysis is a plain ``text -> value`` function so the extraction
pipeline can treat them as black boxes. ``TextAnalyzers`` bundles them and
lets callers swap any one out.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, List, Optional

import spacy
import structlog
import textstat
from langdetect import DetectorFactory, LangDetectException, detect
from spacy.language import Language

from ..protocols import Entity, ReadabilityScore

logger = structlog.get_logger(__name__)

# langdetect is randomized unless seeded
DetectorFactory.seed = 0

UNKNOWN_LANGUAGE = "unknown"
MIN_WORDS_FOR_LANGUAGE = 3

_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+")
_WORD = re.compile(r"[A-Za-zÀ-ɏ']+")

STOPWORDS = frozenset(
    """a an and are as at be been but by for from has have he her his i if in into is it its
    of on or our she so that the their them there these they this to was we were what when
    which who will with you your not no can do does did than then also just""".split()
)

POSITIVE_WORDS = frozenset(
    """good great excellent amazing wonderful best better love loved like happy joy success
    successful positive benefit beneficial win winning improve improved improvement helpful
    easy effective fantastic brilliant enjoy enjoyed strong growth gain gains perfect nice
    favorable remarkable impressive recommend""".split()
)
NEGATIVE_WORDS = frozenset(
    """bad worse worst terrible awful poor hate hated sad fail failed failure negative loss
    losses problem problems difficult hard wrong broken weak decline risk risky crisis damage
    harmful angry disappointing disappointed useless error errors bug bugs slow""".split()
)
NEGATIONS = frozenset({"not", "no", "never", "without", "hardly", "isn't", "wasn't", "don't", "doesn't"})

SPACY_MODEL = "en_core_web_sm"
MAX_NER_CHARS = 10000
ENTITY_LABELS = {
    "PERSON": "person",
    "ORG": "organization",
    "GPE": "location",
    "LOC": "location",
    "DATE": "date",
    "MONEY": "money",
}
ENTITY_CONFIDENCE = 0.8
OTHER_ENTITY_CONFIDENCE = 0.5


def detect_language(text: str) -> str:
    """ISO 639-1 code of ``text``'s language, or ``"unknown"``."""
    if len(text.split()) < MIN_WORDS_FOR_LANGUAGE:
        return UNKNOWN_LANGUAGE
    try:
        return detect(text)
    except LangDetectException as e:
        logger.debug("Language detection failed", error=str(e))
        return UNKNOWN_LANGUAGE


def split_sentences(text: str) -> List[str]:
    return [s.strip() for s in _SENTENCE_SPLIT.split(text.strip()) if s.strip()]


def calculate_readability(text: str) -> ReadabilityScore:
    words = _WORD.findall(text)
    sentences = split_sentences(text) or [text]
    if not words:
        return ReadabilityScore(
            flesch_kincaid=0.0, gunning_fog=0.0, avg_sentence_length=0.0, avg_word_length=0.0, complex_words=0
        )
    return ReadabilityScore(
        flesch_kincaid=float(textstat.flesch_kincaid_grade(text)),
        gunning_fog=float(textstat.gunning_fog(text)),
        avg_sentence_length=len(words) / len(sentences),
        avg_word_length=sum(len(w) for w in words) / len(words),
        complex_words=int(textstat.difficult_words(text)),
    )


def reading_ease(text: str) -> float:
    """Flesch reading ease mapped onto [0, 1]."""
    if not _WORD.search(text):
        return 0.0
    return max(0.0, min(100.0, float(textstat.flesch_reading_ease(text)))) / 100.0


def analyze_sentiment(text: str) -> float:
    """Lexicon polarity in [-1, 1]; 0 when no opinion words are found."""
    tokens = [t.lower() for t in _WORD.findall(text)]
    positive = negative = 0
    for i, token in enumerate(tokens):
        polarity = 1 if token in POSITIVE_WORDS else -1 if token in NEGATIVE_WORDS else 0
        if not polarity:
            continue
        if i > 0 and tokens[i - 1] in NEGATIONS:
            polarity = -polarity
        if polarity > 0:
            positive += 1
        else:
            negative += 1
    total = positive + negative
    return (positive - negative) / total if total else 0.0


@lru_cache(maxsize=1)
def load_nlp(model_name: str = SPACY_MODEL) -> Optional[Language]:
    """Load the spaCy pipeline once; ``None`` when the model is not installed."""
    try:
        nlp = spacy.load(model_name, disable=["parser", "lemmatizer"])
    except OSError as e:
        logger.warning("spaCy model not available, entity extraction disabled", model=model_name, error=str(e))
        return None
    logger.info("Loaded spaCy model", model=model_name)
    return nlp


def extract_entities(text: str, nlp: Optional[Language] = None) -> List[Entity]:
    """
    Named entities found by spaCy, first occurrence only.

    spaCy labels are folded onto the entity types ContentCore reports;
    anything without a counterpart becomes ``"other"``. Only the first
    10,000 characters are analyzed.
    """
    if nlp is None:
        nlp = load_nlp()
    if nlp is None or not text.strip():
        return []

    found: List[Entity] = []
    seen = set()
    for ent in nlp(text[:MAX_NER_CHARS]).ents:
        value = ent.text.strip()
        if not value or value in seen:
            continue
        seen.add(value)
        entity_type = ENTITY_LABELS.get(ent.label_, "other")
        found.append(
            Entity(
                text=value,
                type=entity_type,
                confidence=ENTITY_CONFIDENCE if entity_type != "other" else OTHER_ENTITY_CONFIDENCE,
                metadata={"label": ent.label_},
            )
        )
    return found


def summarize(text: str, max_sentences: int = 3) -> str:
    """Extractive summary: the highest scoring sentences in original order."""
    sentences = split_sentences(text.replace("\n", " "))
    if len(sentences) <= max_sentences:
        return " ".join(sentences)

    frequencies = Counter(w.lower() for w in _WORD.findall(text) if w.lower() not in STOPWORDS)
    if not frequencies:
        return " ".join(sentences[:max_sentences])

    def score(sentence: str) -> float:
        words = [w.lower() for w in _WORD.findall(sentence)]
        if not words:
            return 0.0
        return sum(frequencies.get(w, 0) for w in words) / len(words)

    ranked = sorted(range(len(sentences)), key=lambda i: score(sentences[i]), reverse=True)[:max_sentences]
    return " ".join(sentences[i] for i in sorted(ranked))


@dataclass(frozen=True)
class TextAnalyzers:
    """The analysis functions used by the extraction pipeline."""

    language: Callable[[str], str] = detect_language
    readability: Callable[[str], ReadabilityScore] = calculate_readability
    reading_ease: Callable[[str], float] = reading_ease
    sentiment: Callable[[str], float] = analyze_sentiment
    entities: Callable[[str], List[Entity]] = extract_entities
    summarize: Callable[[str], str] = summarize
