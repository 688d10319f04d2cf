"""Unit tests for the index mapping function."""

import logging
import math

import pytest

from view_search.domain.search import FieldSpec
from view_search.search.analyzers import get_analyzer
from view_search.search.mapping import (
    TYPE_DOC_INFO,
    TYPE_TOKEN,
    Emission,
    FilterOutcome,
    IndexMapper,
    doc_info_key,
    evaluate_filter,
    field_norm,
    term_from_key,
    token_key,
)
from view_search.service_layer.error_reporting import CollectingErrorReporter


def _mapper(*names: str, **kwargs) -> IndexMapper:
    return IndexMapper([FieldSpec(name=name) for name in names], get_analyzer("en"), **kwargs)


@pytest.mark.unit
class TestKeys:
    def test_tags_do_not_collide(self):
        assert TYPE_TOKEN != TYPE_DOC_INFO
        assert token_key("court") == "acourt"
        assert doc_info_key("court") == "bcourt"

    def test_term_from_key(self):
        assert term_from_key(token_key("b-tree")) == "b-tree"


@pytest.mark.unit
class TestFieldNorm:
    def test_sqrt_of_token_count(self):
        assert field_norm(4) == 2.0
        assert field_norm(3) == pytest.approx(math.sqrt(3))

    def test_empty_field_norm_is_zero(self):
        assert field_norm(0) == 0.0


@pytest.mark.unit
class TestEvaluateFilter:
    def test_outcomes(self):
        assert evaluate_filter(None, {}).outcome is FilterOutcome.ACCEPTED
        assert evaluate_filter(lambda doc: doc["keep"], {"keep": True}).keeps_document
        assert evaluate_filter(lambda doc: doc["keep"], {"keep": 0}).outcome is FilterOutcome.REJECTED

    def test_failure_is_captured(self):
        result = evaluate_filter(lambda doc: doc["missing"], {})

        assert result.outcome is FilterOutcome.FAILED
        assert isinstance(result.error, KeyError)
        assert not result.keeps_document


@pytest.mark.unit
class TestIndexMapper:
    def test_single_field_postings_have_no_value(self):
        emissions = _mapper("text")({"_id": "1", "text": "The court, the COURT"})

        assert emissions == [
            Emission("athe"),
            Emission("acourt"),
            Emission("athe"),
            Emission("acourt"),
            Emission("b1", [2.0]),
        ]

    def test_multi_field_postings_carry_field_index(self):
        emissions = _mapper("title", "text")({"_id": "2", "title": "Hello", "text": "big world"})

        assert emissions == [
            Emission("ahello", 0),
            Emission("abig", 1),
            Emission("aworld", 1),
            Emission("b2", [1.0, pytest.approx(math.sqrt(2))]),
        ]

    def test_empty_document_still_gets_doc_info(self):
        assert _mapper("title", "text")({"_id": "3"}) == [Emission("b3", [0.0, 0.0])]

    def test_mapping_is_deterministic(self):
        mapper = _mapper("title", "text")
        document = {"_id": "4", "title": "Same input", "text": "same output"}
        assert mapper(document) == mapper(document)

    def test_rejected_document_emits_nothing(self):
        mapper = _mapper("text", document_filter=lambda doc: doc.get("type") == "post")
        assert mapper({"_id": "5", "type": "page", "text": "hidden"}) == []

    def test_failing_filter_is_reported_and_excludes_document(self):
        reporter = CollectingErrorReporter()
        mapper = _mapper("text", document_filter=lambda doc: doc["type"] == "post", error_reporter=reporter)

        assert mapper({"_id": "6", "text": "no type"}) == []
        assert mapper({"_id": "7", "type": "post", "text": "typed"}) == [Emission("atyped"), Emission("b7", [1.0])]
        assert [(entry.document_id, entry.context) for entry in reporter.errors] == [("6", "filter")]
        assert isinstance(reporter.errors[0].error, KeyError)

    def test_failing_filter_without_reporter_logs_warning(self, caplog):
        mapper = _mapper("text", document_filter=lambda doc: doc["type"])

        with caplog.at_level(logging.WARNING, logger="view_search.search.mapping"):
            assert mapper({"_id": "8", "text": "x"}) == []

        assert "Document filter failed for 8" in caplog.text
