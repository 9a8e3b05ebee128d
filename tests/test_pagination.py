"""
Unit tests for search filtering, page slicing and page links.
"""

import pytest

from swapi_proxy.models import BaseEntity
from swapi_proxy.services.pagination import filter_by_name, page_links, select


@pytest.fixture
def entities():
    return [
        BaseEntity(id=str(i), url=f"https://swapi.test/api/people/{i}", name=f"Trooper {i}")
        for i in range(1, 26)
    ]


class TestSelect:
    """Test cases for select."""

    def test_last_partial_page(self, entities):
        selection = select(entities, page=3, page_size=10)

        assert len(selection.items) == 5
        assert selection.total_pages == 3
        assert [e.id for e in selection.items] == ["21", "22", "23", "24", "25"]

    def test_first_page(self, entities):
        selection = select(entities, page=1, page_size=10)

        assert [e.id for e in selection.items] == [str(i) for i in range(1, 11)]

    def test_all_bypasses_pagination(self, entities):
        selection = select(entities, page=3, page_size=10, return_all=True)

        assert len(selection.items) == 25
        assert selection.total_pages == 1

    def test_page_past_end_is_empty(self, entities):
        selection = select(entities, page=9, page_size=10)

        assert selection.items == []
        assert selection.total_pages == 3

    def test_search_applies_before_pagination(self, entities):
        selection = select(entities, search="TROOPER 2", page=1, page_size=3)

        # "Trooper 2" and "Trooper 20".."Trooper 25"
        assert selection.total_pages == 3
        assert [e.name for e in selection.items] == [
            "Trooper 2",
            "Trooper 20",
            "Trooper 21",
        ]

    def test_no_match(self, entities):
        selection = select(entities, search="wookiee", page=1, page_size=10)

        assert selection.items == []
        assert selection.total_pages == 0

    def test_invalid_page_size(self, entities):
        with pytest.raises(ValueError):
            select(entities, page_size=0)


class TestFilterByName:
    """Test cases for filter_by_name."""

    def test_case_insensitive_substring(self):
        people = [
            BaseEntity(id="1", url="u1", name="Luke Skywalker"),
            BaseEntity(id="2", url="u2", name="Anakin Skywalker"),
            BaseEntity(id="3", url="u3", name="Leia Organa"),
        ]

        assert [e.id for e in filter_by_name(people, "sKyWaLkEr")] == ["1", "2"]

    def test_whitespace_is_part_of_search(self):
        people = [
            BaseEntity(id="1", url="u1", name="Luke Skywalker"),
            BaseEntity(id="2", url="u2", name="Yoda"),
        ]

        assert [e.id for e in filter_by_name(people, " sky")] == ["1"]
        assert [e.id for e in filter_by_name(people, "   ")] == []
        assert filter_by_name(people, "luke ") == [people[0]]

    def test_empty_search_keeps_all(self, entities):
        assert filter_by_name(entities, "") == entities
        assert filter_by_name(entities, None) == entities


class TestPageLinks:
    """Test cases for page_links."""

    def test_middle_page(self):
        assert page_links(2, 3) == (
            "/api/characters?page=3",
            "/api/characters?page=1",
        )

    def test_boundaries(self):
        assert page_links(1, 3) == ("/api/characters?page=2", None)
        assert page_links(3, 3) == (None, "/api/characters?page=2")

    def test_all_disables_links(self):
        assert page_links(1, 1, return_all=True) == (False, False)

    def test_search_is_carried(self):
        next_link, previous_link = page_links(1, 2, search="luke sky")

        assert next_link == "/api/characters?page=2&search=luke+sky"
        assert previous_link is None
