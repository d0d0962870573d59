"""Tests for quiz question generation (F4)."""

import random
from datetime import datetime

from pharmastudy.core.quiz import (
    FILLER_OPTIONS,
    MAX_QUESTIONS,
    QuizQuestion,
    generate_questions,
    score_answers,
)
from pharmastudy.web.schemas import (
    ChapterResponse,
    FlashcardResponse,
    ItemResponse,
    PropertyResponse,
    TopicResponse,
)

NOW = datetime(2024, 1, 1)


def make_item(item_id, back=None, properties=(), topic_id="t1", chapter_id="c1"):
    flashcard = None
    if back is not None:
        flashcard = FlashcardResponse(
            id=f"fc-{item_id}", item_id=item_id, front=f"Question {item_id}?", back=back
        )
    return ItemResponse(
        id=item_id,
        topic_id=topic_id,
        chapter_id=chapter_id,
        name=f"Item {item_id}",
        type="medication",
        properties=[PropertyResponse(key=k, value=v) for k, v in properties],
        flashcard=flashcard,
        created_at=NOW,
        updated_at=NOW,
    )


def make_tree(*topics):
    """One chapter per (chapter_id, topic_id, items) triple."""
    chapters = {}
    for chapter_id, topic_id, items in topics:
        chapter = chapters.setdefault(
            chapter_id,
            ChapterResponse(id=chapter_id, name=chapter_id, order=1, created_at=NOW),
        )
        chapter.topics.append(
            TopicResponse(
                id=topic_id,
                chapter_id=chapter_id,
                name=topic_id,
                order=len(chapter.topics) + 1,
                items=items,
                created_at=NOW,
            )
        )
    return list(chapters.values())


class TestFlashcardQuestions:
    def test_answer_and_distractors(self):
        items = [make_item(f"i{n}", back=f"A{n}") for n in range(1, 6)]
        questions = generate_questions(make_tree(("c1", "t1", items)), rng=random.Random(1))

        question = next(q for q in questions if q.item_id == "i1")
        assert question.question == "Question i1?"
        assert question.correct_option == "A1"
        assert question.options.count("A1") == 1
        assert len(question.options) == 4

    def test_duplicate_backs_are_not_repeated(self):
        items = [
            make_item("i1", back="Same"),
            make_item("i2", back="Same"),
            make_item("i3", back="Other"),
        ]
        questions = generate_questions(make_tree(("c1", "t1", items)), rng=random.Random(2))

        question = next(q for q in questions if q.item_id == "i1")
        assert sorted(question.options) == ["Other", "Same"]

    def test_item_without_flashcard_gives_no_question(self):
        questions = generate_questions(make_tree(("c1", "t1", [make_item("i1")])))
        assert questions == []


class TestPropertyQuestions:
    def test_keyword_properties_only(self):
        item = make_item(
            "i1",
            properties=[
                ("Molecular Formula", "C9H8O4"),
                ("Molar Mass", "180.16 g/mol"),
                ("CAS Number", "50-78-2"),
                ("Half-life", "15 min"),
            ],
        )
        questions = generate_questions(make_tree(("c1", "t1", [item])), rng=random.Random(3))

        answers = sorted(q.correct_option for q in questions)
        assert answers == ["180.16 g/mol", "50-78-2", "C9H8O4"]
        formula = next(q for q in questions if q.correct_option == "C9H8O4")
        assert formula.question == "What is the molecular formula of Item i1?"
        assert sorted(formula.options) == sorted(["C9H8O4", *FILLER_OPTIONS])

    def test_blank_or_filler_values_skipped(self):
        item = make_item(
            "i1",
            properties=[
                ("Molecular Formula", "varies"),
                ("Molar Mass", " "),
                ("CAS Number", "50-78-2"),
            ],
        )
        questions = generate_questions(make_tree(("c1", "t1", [item])), rng=random.Random(4))

        assert [q.correct_option for q in questions] == ["50-78-2"]
        assert len(set(questions[0].options)) == len(questions[0].options)


class TestSession:
    def test_capped(self):
        items = [make_item(f"i{n}", back=f"A{n}") for n in range(15)]
        questions = generate_questions(make_tree(("c1", "t1", items)))
        assert len(questions) == MAX_QUESTIONS

    def test_chapter_and_topic_filters(self):
        tree = make_tree(
            ("c1", "t1", [make_item("i1", back="A1")]),
            ("c1", "t2", [make_item("i2", back="A2", topic_id="t2")]),
            ("c2", "t3", [make_item("i3", back="A3", topic_id="t3", chapter_id="c2")]),
        )

        by_chapter = generate_questions(tree, chapter_id="c1")
        by_topic = generate_questions(tree, topic_id="t2")

        assert sorted(q.item_id for q in by_chapter) == ["i1", "i2"]
        assert [q.item_id for q in by_topic] == ["i2"]
        # Distractors still come from the whole tree
        assert len(by_topic[0].options) == 3

    def test_seeded_rng_is_repeatable(self):
        items = [make_item(f"i{n}", back=f"A{n}") for n in range(8)]
        tree = make_tree(("c1", "t1", items))

        first = generate_questions(tree, rng=random.Random(42))
        second = generate_questions(tree, rng=random.Random(42))

        assert [q.to_dict() for q in first] == [q.to_dict() for q in second]


class TestScoring:
    def test_score_answers(self):
        questions = [
            QuizQuestion(id="q1", question="?", options=["a", "b"], correct_answer=0),
            QuizQuestion(id="q2", question="?", options=["a", "b"], correct_answer=1),
            QuizQuestion(id="q3", question="?", options=["a", "b"], correct_answer=1),
        ]

        score = score_answers(questions, [0, 0, None])

        assert (score.total, score.correct) == (3, 1)
        assert score.percentage == 33

    def test_empty_session(self):
        assert score_answers([], []).percentage == 0
