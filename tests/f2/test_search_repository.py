"""Tests for search over the relational store (F2)."""

import pytest

from pharmastudy.db import content_repository as repo
from pharmastudy.db.search_repository import search
from pharmastudy.web.schemas import ChapterCreate, ItemCreate, PropertyIn, TopicCreate


@pytest.fixture
def topic(session, alice):
    chapter = repo.create_chapter(
        session, alice.id, ChapterCreate(name="Pharmacodynamics", description="Receptors")
    )
    return repo.create_topic(
        session, alice.id, chapter.id, TopicCreate(name="Receptor Theory", description="Agonists")
    )


def _item(session, user, topic, name, item_type="molecule", **kwargs):
    return repo.create_item(session, user.id, topic.id, ItemCreate(name=name, type=item_type, **kwargs))


class TestSearch:
    def test_case_insensitive_name(self, session, alice, topic):
        _item(session, alice, topic, "Aspirin", "medication")

        result = search(session, alice.id, "ASPIRIN")
        assert [i.name for i in result.items] == ["Aspirin"]

    def test_empty_query_returns_nothing(self, session, alice, topic):
        _item(session, alice, topic, "Aspirin")

        result = search(session, alice.id, "   ")
        assert (result.items, result.chapters, result.topics) == ([], [], [])

    def test_matches_property_value(self, session, alice, topic):
        _item(
            session,
            alice,
            topic,
            "Aspirin",
            properties=[PropertyIn(key="Molecular Formula", value="C9H8O4")],
        )
        assert len(search(session, alice.id, "c9h8o4").items) == 1

    def test_type_filter_only_applies_to_items(self, session, alice, topic):
        _item(session, alice, topic, "Receptor agonist A", "molecule")
        _item(session, alice, topic, "Receptor kinase", "enzyme")

        result = search(session, alice.id, "receptor", item_type="Enzyme")

        assert [i.name for i in result.items] == ["Receptor kinase"]
        assert [t.name for t in result.topics] == ["Receptor Theory"]
        assert [c.name for c in result.chapters] == ["Pharmacodynamics"]

    def test_like_wildcards_are_literal(self, session, alice, topic):
        _item(session, alice, topic, "Aspirin")
        assert search(session, alice.id, "%").items == []

    def test_item_results_capped_at_50(self, session, alice, topic):
        for n in range(55):
            _item(session, alice, topic, f"Compound {n}")

        assert len(search(session, alice.id, "compound").items) == 50

    def test_other_users_content_is_invisible(self, session, alice, bob, topic):
        _item(session, alice, topic, "Aspirin")

        result = search(session, bob.id, "aspirin")
        assert result.items == []
        assert search(session, bob.id, "pharmacodynamics").chapters == []
