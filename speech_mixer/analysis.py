"""Local lexical analysis: intensity, rhythm, progression, mood and emphasis."""

import re

from speech_mixer.constants import (
    EMOTION_KEYWORDS,
    PUNCTUATION_WEIGHT,
    KEYWORD_WEIGHT,
    KEYWORD_DENSITY_SCALE,
    RHYTHM_REFERENCE_WORDS,
    MOOD_PASSION_INTENSITY,
    MOOD_TENSION_INTENSITY,
    MOOD_INTIMACY_KEYWORD_DENSITY,
    MOOD_INTIMACY_MAX_RHYTHM,
    MOOD_RELAXATION_MAX_RHYTHM,
)
from speech_mixer.models import TextAnalysis

_SENTENCE_RE = re.compile(r"[^.!?…]+(?:\.\.\.|[.!?…]+)?")
_WORD_RE = re.compile(r"[\w']+")
_ELLIPSIS_RE = re.compile(r"\.\.\.|…")

# Runs of ALL-CAPS words, at least two letters each: "STOP RIGHT THERE"
_CAPS_RUN_RE = re.compile(r"\b[A-Z][A-Z']+(?:\s+[A-Z][A-Z']+)*\b")
_QUOTED_RE = re.compile(r'"[^"]+"|“[^”]+”')

_KEYWORDS = {word for words in EMOTION_KEYWORDS.values() for word in words}


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def clean_text(text: str) -> str:
    """Collapse runs of whitespace into single spaces."""
    return re.sub(r"\s+", " ", text).strip()


def split_sentences(text: str) -> list[str]:
    """Split text into sentences, keeping the terminal punctuation."""
    sentences = []
    for match in _SENTENCE_RE.finditer(text):
        sentence = match.group(0).strip()
        if _WORD_RE.search(sentence):
            sentences.append(sentence)
    return sentences


def _words(text: str) -> list[str]:
    return [w.lower() for w in _WORD_RE.findall(text)]


def _score(text: str, sentence_count: int) -> tuple[float, float]:
    """Return (intensity, keyword_density) for a piece of text."""
    words = _words(text)
    marks = text.count("!") + len(_ELLIPSIS_RE.findall(text))
    density = marks / max(1, sentence_count)

    hits = sum(1 for w in words if w in _KEYWORDS)
    keyword_density = hits / len(words) if words else 0.0

    intensity = (
        PUNCTUATION_WEIGHT * min(1.0, density)
        + KEYWORD_WEIGHT * min(1.0, keyword_density * KEYWORD_DENSITY_SCALE)
    )
    return _clamp(intensity), keyword_density


def _rhythm(sentences: list[str]) -> float:
    if not sentences:
        return 0.5
    mean_words = sum(len(_words(s)) for s in sentences) / len(sentences)
    return _clamp(1.0 - mean_words / RHYTHM_REFERENCE_WORDS)


def _progression(sentences: list[str]) -> float:
    """How much intensity builds from the first half of the text to the second."""
    if len(sentences) < 2:
        return 0.0
    half = len(sentences) // 2
    early = [_score(s, 1)[0] for s in sentences[:half]]
    late = [_score(s, 1)[0] for s in sentences[half:]]
    return _clamp(sum(late) / len(late) - sum(early) / len(early))


def classify_mood(intensity: float, keyword_density: float, rhythm: float, text: str) -> str:
    """Pick a contextual mood from intensity, keyword density and rhythm thresholds."""
    if intensity >= MOOD_PASSION_INTENSITY:
        return "passion"
    if intensity >= MOOD_TENSION_INTENSITY:
        return "tension"
    if keyword_density >= MOOD_INTIMACY_KEYWORD_DENSITY and rhythm < MOOD_INTIMACY_MAX_RHYTHM:
        return "intimacy"
    if "?" in text or text.rstrip().endswith(("...", "…")):
        return "anticipation"
    if rhythm < MOOD_RELAXATION_MAX_RHYTHM:
        return "relaxation"
    return "neutral"


def find_emphasis(text: str) -> list[tuple[int, int]]:
    """Return non-nested (start, end) spans of capitalized runs and quoted spans."""
    candidates = [m.span() for m in _CAPS_RUN_RE.finditer(text)]
    candidates += [m.span() for m in _QUOTED_RE.finditer(text)]
    candidates.sort(key=lambda span: (span[0], -span[1]))

    spans = []
    for start, end in candidates:
        if spans and start < spans[-1][1]:
            continue  # nested in (or crossing) an earlier span
        spans.append((start, end))
    return spans


def analyze_text(text: str) -> TextAnalysis:
    """Analyze a segment's text.

    Intensity combines the density of "!" and ellipses per sentence with the
    share of emotion keywords. Rhythm is 1 for very short sentences and falls
    to 0 as the mean sentence length approaches RHYTHM_REFERENCE_WORDS.
    Emphasis spans refer to positions in clean_text(text).
    """
    cleaned = clean_text(text)
    sentences = split_sentences(cleaned)
    intensity, keyword_density = _score(cleaned, len(sentences))
    rhythm = _rhythm(sentences)

    return TextAnalysis(
        intensity=intensity,
        rhythm=rhythm,
        emotional_progression=_progression(sentences),
        keyword_density=keyword_density,
        contextual_mood=classify_mood(intensity, keyword_density, rhythm, cleaned),
        emphasis=find_emphasis(cleaned),
    )
