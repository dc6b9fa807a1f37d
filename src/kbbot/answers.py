"""Knowledge-base answer service adapters."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from rapidfuzz import fuzz, process, utils

from kbbot.turn import TurnContext

MIN_QUERY_LENGTH = 3
MIN_FUZZY_SCORE = 60


@dataclass(frozen=True)
class Answer:
    """One knowledge-base hit."""

    answer: str
    score: float
    questions: tuple[str, ...] = ()
    prompts: tuple[str, ...] = ()


@dataclass(frozen=True)
class KnowledgeEntry:
    questions: tuple[str, ...]
    answer: str
    prompts: tuple[str, ...] = ()

    def score(self, text: str, *, score_cutoff: float = 0) -> float:
        """Best WRatio between `text` and any of the entry's questions, scaled to 0..1."""
        match = process.extractOne(
            text,
            self.questions,
            scorer=fuzz.WRatio,
            processor=utils.default_process,
            score_cutoff=score_cutoff,
        )
        if match is None:
            return 0.0
        return match[1] / 100


class AnswerService(Protocol):
    async def query(self, context: TurnContext) -> list[Answer]: ...


type AnswerServiceDictionary = Mapping[str, AnswerService]


class StaticAnswerService:
    """In-memory knowledge base scored by fuzzy question matching."""

    def __init__(
        self, entries: Iterable[KnowledgeEntry], *, top: int = 3, score_cutoff: float = MIN_FUZZY_SCORE
    ) -> None:
        self._entries = list(entries)
        self._top = top
        self._score_cutoff = score_cutoff

    @classmethod
    def from_mapping(cls, data: Iterable[Mapping[str, Any]]) -> StaticAnswerService:
        return cls(
            KnowledgeEntry(
                questions=tuple(str(question) for question in item.get("questions", ())),
                answer=str(item.get("answer", "")),
                prompts=tuple(str(prompt) for prompt in item.get("prompts", ())),
            )
            for item in data
        )

    async def query(self, context: TurnContext) -> list[Answer]:
        return self.search(context.turn.text)

    def search(self, text: str) -> list[Answer]:
        if len(utils.default_process(text)) < MIN_QUERY_LENGTH:
            return []
        hits: list[Answer] = []
        for entry in self._entries:
            score = entry.score(text, score_cutoff=self._score_cutoff)
            if score <= 0:
                continue
            hits.append(Answer(entry.answer, round(score, 4), entry.questions, entry.prompts))
        hits.sort(key=lambda hit: hit.score, reverse=True)
        return hits[: self._top]


DEFAULT_KNOWLEDGE: dict[str, list[dict[str, Any]]] = {
    "en-us": [
        {
            "questions": ["What are your opening hours?", "When are you open?"],
            "answer": "We are open Monday to Friday, 9am to 6pm.",
            "prompts": ["Are you open on holidays?"],
        },
        {
            "questions": ["Are you open on holidays?", "Holiday opening"],
            "answer": "We are closed on public holidays.",
        },
        {
            "questions": ["How do I reset my password?", "Forgot password"],
            "answer": "Use the 'Forgot password' link on the sign-in page and follow the email we send you.",
        },
        {
            "questions": ["What can you do?", "Help"],
            "answer": "I can answer questions about our service. Try asking about opening hours or passwords.",
        },
    ],
    "es-es": [
        {
            "questions": ["¿Cuál es vuestro horario?", "¿Cuándo abrís?"],
            "answer": "Abrimos de lunes a viernes, de 9 a 18 h.",
            "prompts": ["¿Abrís en festivos?"],
        },
        {
            "questions": ["¿Abrís en festivos?", "Horario festivos"],
            "answer": "Los festivos permanecemos cerrados.",
        },
        {
            "questions": ["¿Cómo restablezco mi contraseña?", "Olvidé la contraseña"],
            "answer": "Usa el enlace 'He olvidado mi contraseña' en la página de acceso.",
        },
    ],
}


def build_static_answer_services(locales: Iterable[str]) -> dict[str, AnswerService]:
    return {
        locale: StaticAnswerService.from_mapping(DEFAULT_KNOWLEDGE.get(locale, DEFAULT_KNOWLEDGE["en-us"]))
        for locale in locales
    }
