"""Speech markup as an ordered list of directives, serialized per synthesis dialect."""

import re
from dataclasses import dataclass, field
from xml.sax.saxutils import escape, quoteattr

from speech_mixer.analysis import clean_text
from speech_mixer.constants import (
    PAUSE_BASE_MS,
    PAUSE_INTENSITY_MS,
    PAUSE_MAX_MS,
    PAUSE_MULTIPLIERS,
    EMPHASIS_STRONG_INTENSITY,
    MOOD_PATTERNS,
    NEUTRAL_MOOD_PATTERN,
)
from speech_mixer.models import TextAnalysis

# Ellipsis first so "..." is one pause, not three
_PAUSE_RE = re.compile(r"\.\.\.|…|[.!?,]")


@dataclass
class Directive:
    kind: str                  # "prosody", "break" or "emphasis"
    span: tuple[int, int]      # (start, end) in Markup.text; breaks are zero-width
    params: dict = field(default_factory=dict)


@dataclass
class Markup:
    text: str
    directives: list[Directive] = field(default_factory=list)

    def add(self, kind: str, span: tuple[int, int], **params) -> Directive:
        directive = Directive(kind=kind, span=span, params=params)
        self.directives.append(directive)
        return directive

    def of_kind(self, kind: str) -> list[Directive]:
        return [d for d in self.directives if d.kind == kind]

    @property
    def prosody(self) -> dict:
        """Parameters of the outermost prosody directive, or {}."""
        found = self.of_kind("prosody")
        return dict(found[0].params) if found else {}

    def plain_text(self) -> str:
        return self.text

    def to_ssml(self, speak: bool = True) -> str:
        """Serialize to SSML. Span directives must nest; breaks land inside open spans."""
        breaks: dict[int, list[Directive]] = {}
        opens: dict[int, list[Directive]] = {}
        for directive in self.directives:
            start, end = directive.span
            if directive.kind == "break":
                breaks.setdefault(start, []).append(directive)
            else:
                opens.setdefault(start, []).append(directive)

        out = []
        stack: list[Directive] = []
        for pos in range(len(self.text) + 1):
            for directive in breaks.get(pos, []):
                out.append(f"<break{_attrs(directive.params)}/>")
            while stack and stack[-1].span[1] <= pos:
                out.append(f"</{stack.pop().kind}>")
            for directive in sorted(opens.get(pos, []), key=lambda d: -d.span[1]):
                out.append(f"<{directive.kind}{_attrs(directive.params)}>")
                stack.append(directive)
            if pos < len(self.text):
                out.append(escape(self.text[pos]))
        while stack:
            out.append(f"</{stack.pop().kind}>")

        body = "".join(out)
        return f"<speak>{body}</speak>" if speak else body


def _attrs(params: dict) -> str:
    return "".join(f" {key}={quoteattr(str(value))}" for key, value in params.items())


def pause_duration(intensity: float) -> float:
    """Base pause length in ms: 1000ms, up to +700ms at full intensity, capped."""
    return min(PAUSE_MAX_MS, PAUSE_BASE_MS + intensity * PAUSE_INTENSITY_MS)


def mood_pattern(mood: str) -> dict:
    return dict(MOOD_PATTERNS.get(mood, NEUTRAL_MOOD_PATTERN))


def build_markup(text: str, analysis: TextAnalysis) -> Markup:
    """Build pause, prosody and emphasis directives for a segment.

    The analysis must come from the same text (its emphasis spans index the
    whitespace-collapsed text).
    """
    markup = Markup(clean_text(text))
    pattern = mood_pattern(analysis.contextual_mood)
    markup.add("prosody", (0, len(markup.text)), pitch=pattern["pitch"], rate=pattern["rate"])

    pause = pause_duration(analysis.intensity)
    for match in _PAUSE_RE.finditer(markup.text):
        ms = round(pause * PAUSE_MULTIPLIERS[match.group(0)])
        markup.add("break", (match.end(), match.end()), time=f"{ms}ms")

    level = "strong" if analysis.intensity > EMPHASIS_STRONG_INTENSITY else "moderate"
    for span in analysis.emphasis:
        markup.add("emphasis", span, level=level)

    return markup
