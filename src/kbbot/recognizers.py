"""Intent classifier adapters."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from kbbot.turn import TurnContext

NONE_INTENT = "None"
NAME_PATTERN = re.compile(r"\b(?:my name is|i am|i'm|me llamo|soy)\s+([a-záéíóúñü'-]+)", re.IGNORECASE)


@dataclass(frozen=True)
class RecognitionResult:
    """Scored intents and entities for one utterance."""

    text: str
    intents: dict[str, float] = field(default_factory=dict)
    entities: dict[str, Any] = field(default_factory=dict)

    def top_intent(self, threshold: float = 0.0, default: str = NONE_INTENT) -> str:
        """Best scoring intent, or `default` when its score is below `threshold`."""
        if not self.intents:
            return default
        name, score = max(self.intents.items(), key=lambda item: item[1])
        if score < threshold:
            return default
        return name

    def score(self, intent: str) -> float:
        return self.intents.get(intent, 0.0)


class Recognizer(Protocol):
    async def recognize(self, context: TurnContext) -> RecognitionResult: ...


type RecognizerDictionary = Mapping[str, Recognizer]


class KeywordRecognizer:
    """Pattern based recognizer for local runs and tests.

    Each intent owns a list of regular expressions. An utterance matching any
    of them scores 1.0 for that intent; every other intent scores 0.0.
    """

    def __init__(self, patterns: Mapping[str, Iterable[str]]) -> None:
        self._patterns = {
            intent: [re.compile(pattern, re.IGNORECASE) for pattern in items] for intent, items in patterns.items()
        }

    async def recognize(self, context: TurnContext) -> RecognitionResult:
        text = context.turn.text.strip()
        intents = {
            intent: 1.0 if any(pattern.search(text) for pattern in patterns) else 0.0
            for intent, patterns in self._patterns.items()
        }
        return RecognitionResult(text=text, intents=intents, entities=extract_entities(text))


def extract_entities(text: str) -> dict[str, Any]:
    entities: dict[str, Any] = {}
    if match := NAME_PATTERN.search(text):
        entities["name"] = match.group(1).capitalize()
    return entities


DEFAULT_PATTERNS: dict[str, dict[str, list[str]]] = {
    "en-us": {
        "Greeting": [r"^\s*(hi|hello|hey|good (morning|afternoon|evening))\b", r"\bmy name is\b"],
        "Cancel": [r"^\s*(cancel|stop|quit|never ?mind)\b"],
        "Help": [r"^\s*(help|what can you do)\b"],
    },
    "es-es": {
        "Greeting": [r"^\s*(hola|buenas|buenos d[ií]as)\b", r"\bme llamo\b"],
        "Cancel": [r"^\s*(cancelar|para|det[eé]n)\b"],
        "Help": [r"^\s*(ayuda|qu[eé] puedes hacer)\b"],
    },
}


def build_keyword_recognizers(locales: Iterable[str]) -> dict[str, Recognizer]:
    """One keyword recognizer per locale; unknown locales reuse the English patterns."""
    return {locale: KeywordRecognizer(DEFAULT_PATTERNS.get(locale, DEFAULT_PATTERNS["en-us"])) for locale in locales}
