"""Quiz question generation.

Responsibilities:
- Derive multiple-choice questions from existing item data
- Flashcard questions: the back is the answer, other items' backs are distractors
- Property questions: formula/mass/number values against fixed fillers
- Shuffle options and the question pool, cap a session at 10 questions

Sessions are not persisted and not deterministic unless a seeded
``random.Random`` is passed in.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Any, Iterable

import structlog

from pharmastudy.web.schemas import ChapterResponse, ItemResponse

logger = structlog.get_logger(__name__)

# =============================================================================
# CONSTANTS
# =============================================================================

MAX_QUESTIONS = 10
MAX_DISTRACTORS = 3
PROPERTY_KEYWORDS = ("formula", "mass", "number")
FILLER_OPTIONS = ("Unknown", "Not applicable", "Varies")
FILLER_KEYS = frozenset(option.lower() for option in FILLER_OPTIONS)


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass
class QuizQuestion:
    """A single multiple-choice question."""

    id: str
    question: str
    options: list[str]
    correct_answer: int
    explanation: str = ""
    item_id: str | None = None

    @property
    def correct_option(self) -> str:
        return self.options[self.correct_answer]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "question": self.question,
            "options": list(self.options),
            "correct_answer": self.correct_answer,
            "explanation": self.explanation,
            "item_id": self.item_id,
        }


@dataclass
class QuizScore:
    """Outcome of a finished quiz session."""

    total: int
    correct: int

    @property
    def percentage(self) -> int:
        if self.total == 0:
            return 0
        return round(self.correct * 100 / self.total)


# =============================================================================
# HELPERS
# =============================================================================


def _flashcard_text(item: ItemResponse) -> tuple[str, str] | None:
    if item.flashcard and item.flashcard.front and item.flashcard.back:
        return item.flashcard.front, item.flashcard.back
    return None


def _shuffled(options: list[str], rng: random.Random) -> list[str]:
    shuffled = list(options)
    rng.shuffle(shuffled)
    return shuffled


def _select_items(
    chapters: Iterable[ChapterResponse],
    chapter_id: str | None,
    topic_id: str | None,
) -> list[ItemResponse]:
    selected = []
    for chapter in chapters:
        if chapter_id and chapter.id != chapter_id:
            continue
        for topic in chapter.topics:
            if topic_id and topic.id != topic_id:
                continue
            selected.extend(topic.items)
    return selected


def _all_items(chapters: Iterable[ChapterResponse]) -> list[ItemResponse]:
    return [item for chapter in chapters for topic in chapter.topics for item in topic.items]


def _flashcard_question(
    item: ItemResponse, pool: list[ItemResponse], rng: random.Random
) -> QuizQuestion:
    front, back = _flashcard_text(item)
    distractors = []
    for other in pool:
        text = _flashcard_text(other)
        if other.id == item.id or text is None or text[1] == back or text[1] in distractors:
            continue
        distractors.append(text[1])
        if len(distractors) == MAX_DISTRACTORS:
            break

    options = _shuffled([back, *distractors], rng)
    return QuizQuestion(
        id=f"q-{item.id}",
        question=front,
        options=options,
        correct_answer=options.index(back),
        explanation=f"Correct answer: {back}",
        item_id=item.id,
    )


def _property_questions(item: ItemResponse, rng: random.Random) -> list[QuizQuestion]:
    questions = []
    for prop in item.properties:
        key = prop.key.lower()
        if not any(word in key for word in PROPERTY_KEYWORDS):
            continue
        # A blank value or one spelled like a filler would leave no single right option
        if not prop.value.strip() or prop.value.strip().lower() in FILLER_KEYS:
            continue
        options = _shuffled([prop.value, *FILLER_OPTIONS], rng)
        questions.append(
            QuizQuestion(
                id=f"q-{item.id}-{prop.key}",
                question=f"What is the {key} of {item.name}?",
                options=options,
                correct_answer=options.index(prop.value),
                explanation=f"The {key} of {item.name} is {prop.value}.",
                item_id=item.id,
            )
        )
    return questions


# =============================================================================
# PUBLIC API
# =============================================================================


def generate_questions(
    chapters: Iterable[ChapterResponse],
    chapter_id: str | None = None,
    topic_id: str | None = None,
    max_questions: int = MAX_QUESTIONS,
    rng: random.Random | None = None,
) -> list[QuizQuestion]:
    """Build a quiz session from the chapter tree.

    Args:
        chapters: Chapter tree as returned by the data-access layer
        chapter_id: Only use items of this chapter (None = all)
        topic_id: Only use items of this topic (None = all)
        max_questions: Session size cap
        rng: Random source (unseeded by default)

    Returns:
        Up to ``max_questions`` shuffled questions
    """
    rng = rng or random.Random()
    chapters = list(chapters)
    # Distractors may come from any item, not only the filtered ones
    pool = _all_items(chapters)

    questions: list[QuizQuestion] = []
    for item in _select_items(chapters, chapter_id, topic_id):
        if _flashcard_text(item) is not None:
            questions.append(_flashcard_question(item, pool, rng))
        questions.extend(_property_questions(item, rng))

    rng.shuffle(questions)
    session = questions[:max_questions]

    logger.info("quiz.generated", candidates=len(questions), selected=len(session))
    return session


def score_answers(questions: list[QuizQuestion], answers: list[int | None]) -> QuizScore:
    """Count correct answers; unanswered questions count as wrong."""
    correct = sum(
        1
        for question, answer in zip(questions, answers)
        if answer is not None and answer == question.correct_answer
    )
    return QuizScore(total=len(questions), correct=correct)
