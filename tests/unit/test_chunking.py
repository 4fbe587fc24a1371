"""Tests for chunk splitting and chunk result merging."""

from __future__ import annotations

import pytest

from paydesk.core.exceptions import InvalidQueryError
from paydesk.models.query import QueryFilters
from paydesk.sync.chunking import chunk_count, chunk_values, merge_documents
from paydesk.sync.synchronizer import plan_queries


class TestChunkValues:
    def test_exact_and_remainder(self):
        chunks = chunk_values(list(range(23)), 10)
        assert [len(chunk) for chunk in chunks] == [10, 10, 3]
        assert [v for chunk in chunks for v in chunk] == list(range(23))

    def test_empty(self):
        assert chunk_values([], 10) == []
        assert chunk_count(0, 10) == 0

    def test_count_is_ceiling(self):
        assert chunk_count(25, 10) == 3
        assert chunk_count(10, 10) == 1

    def test_rejects_non_positive_size(self):
        with pytest.raises(ValueError):
            chunk_values([1], 0)


class TestMergeDocuments:
    def test_dedups_by_id_last_write_wins_first_position(self):
        merged = merge_documents([
            [{"id": "a", "v": 1}, {"id": "b", "v": 1}],
            [{"id": "a", "v": 2}, {"id": "c", "v": 1}],
        ])
        assert merged == [{"id": "a", "v": 2}, {"id": "b", "v": 1}, {"id": "c", "v": 1}]

    def test_documents_without_id_are_all_kept(self, caplog):
        merged = merge_documents([
            [{"v": 1}, {"id": "a", "v": 1}],
            [{"v": 2}, {"id": None, "v": 3}],
        ])
        assert merged == [{"v": 1}, {"id": "a", "v": 1}, {"v": 2}, {"id": None, "v": 3}]
        assert "3 document(s) without an id" in caplog.text


class TestQueryFilters:
    def test_none_values_dropped(self):
        filters = QueryFilters.from_mapping({"companyId": None, "paid": True})
        assert filters.equals == (("paid", True),)
        assert not filters.has_array

    def test_one_array_filter_only(self):
        with pytest.raises(InvalidQueryError):
            QueryFilters.from_mapping({"clientId": ["a"], "companyId": ["b"]})

    def test_empty_array_selects_nothing(self):
        assert QueryFilters.from_mapping({"clientId": []}).is_empty_array

    def test_sets_are_ordered(self):
        assert QueryFilters.from_mapping({"clientId": {"b", "a"}}).in_values == ("a", "b")

    def test_plan_keeps_equality_on_every_chunk(self):
        filters = QueryFilters.from_mapping({"companyId": "co-1", "clientId": [str(i) for i in range(25)]})
        queries = plan_queries(filters, 10)
        assert len(queries) == 3
        assert all(query.equals == (("companyId", "co-1"),) for query in queries)
        assert [len(query.field_in.values) for query in queries] == [10, 10, 5]

    def test_document_query_matches(self):
        query = QueryFilters.from_mapping({"companyId": "co-1", "clientId": ["a", "b"]}).to_query()
        assert query.matches({"companyId": "co-1", "clientId": "b"})
        assert not query.matches({"companyId": "co-2", "clientId": "b"})
        assert not query.matches({"companyId": "co-1", "clientId": "z"})
