"""
Tests for csv_rag/embeddings.py
Batched embedding with per-batch fallback.
"""

from unittest.mock import Mock

import pytest

from conftest import StubSimilarityClient, failing
from csv_rag.embeddings import REFERENCE_SENTENCE, EmbeddingProvider
from csv_rag.result import Ok


def make_provider(client, **kwargs):
    kwargs.setdefault("batch_delay", 0)
    kwargs.setdefault("sleep", lambda seconds: None)
    return EmbeddingProvider(client, **kwargs)


class TestEmbedShape:
    def test_one_vector_per_text_with_fixed_dim(self, stub_client):
        texts = [f"row number {i} with text" for i in range(23)]
        batch = make_provider(stub_client).embed(texts)
        assert len(batch) == 23
        assert all(len(v.values) == 384 for v in batch)

    def test_unit_ids_kept_in_order(self, stub_client):
        batch = make_provider(stub_client).embed(["alpha row", "beta row"], unit_ids=["0-0", "1-0"])
        assert [v.unit_id for v in batch] == ["0-0", "1-0"]

    def test_mismatched_ids_rejected(self, stub_client):
        with pytest.raises(ValueError):
            make_provider(stub_client).embed(["alpha row"], unit_ids=["a", "b"])

    def test_empty_input(self, stub_client):
        batch = make_provider(stub_client).embed([])
        assert len(batch) == 0
        assert stub_client.calls == []

    def test_length_preserved_when_service_unreachable(self):
        client = StubSimilarityClient(failing())
        texts = ["first value here", "ab", "12345", "second value here"]
        batch = make_provider(client).embed(texts)
        assert len(batch) == len(texts)
        assert all(len(v) == 384 for v in batch)
        assert batch.degraded


class TestBatching:
    def test_batches_of_ten_in_order(self, stub_client):
        texts = [f"text item {i}" for i in range(25)]
        make_provider(stub_client).embed(texts)
        assert [len(sentences) for _, sentences in stub_client.calls] == [10, 10, 5]
        assert stub_client.calls[0][1][0] == "text item 0"
        assert stub_client.calls[2][1][-1] == "text item 24"

    def test_reference_sentence_is_source(self, stub_client):
        make_provider(stub_client).embed(["some row text"])
        assert stub_client.calls[0][0] == REFERENCE_SENTENCE

    def test_sleeps_after_each_batch(self, stub_client):
        sleep = Mock()
        provider = EmbeddingProvider(stub_client, batch_size=10, batch_delay=0.2, sleep=sleep)
        provider.embed([f"text item {i}" for i in range(21)])
        assert sleep.call_count == 3
        sleep.assert_called_with(0.2)

    def test_sleeps_after_failed_batch_too(self):
        sleep = Mock()
        provider = EmbeddingProvider(StubSimilarityClient(failing()), batch_delay=0.2, sleep=sleep)
        provider.embed(["text one", "text two"])
        assert sleep.call_count == 1


class TestFiltering:
    def test_invalid_texts_not_sent(self, stub_client):
        batch = make_provider(stub_client).embed(["valid text", "ab", "http://x.com", "another valid"])
        assert stub_client.calls[0][1] == ["valid text", "another valid"]
        assert len(batch) == 4
        # Filtered texts get small fallback vectors.
        assert max(batch[1].values) < 0.1
        assert max(batch[2].values) < 0.1

    def test_all_invalid_bypasses_filter(self, stub_client):
        batch = make_provider(stub_client).embed(["12", "345"])
        assert stub_client.calls[0][1] == ["12", "345"]
        assert len(batch) == 2
        assert not batch.degraded

    def test_batch_with_only_invalid_texts_skips_call(self, stub_client):
        texts = ["99"] * 10 + ["valid text"]
        batch = make_provider(stub_client).embed(texts)
        assert len(stub_client.calls) == 1
        assert stub_client.calls[0][1] == ["valid text"]
        assert len(batch) == 11

    def test_no_sleep_for_batch_without_remote_call(self, stub_client):
        sleep = Mock()
        provider = EmbeddingProvider(stub_client, batch_size=10, batch_delay=0.2, sleep=sleep)
        provider.embed(["99"] * 10 + ["valid text"])
        assert len(stub_client.calls) == 1
        sleep.assert_called_once_with(0.2)


class TestFallback:
    def test_failure_isolated_to_one_batch(self):
        calls = {"n": 0}

        def responder(source, sentences):
            calls["n"] += 1
            if calls["n"] == 2:
                return failing()(source, sentences)
            return [0.9] * len(sentences)

        texts = [f"text item {i}" for i in range(25)]
        batch = make_provider(StubSimilarityClient(responder)).embed(texts)
        assert batch.degraded_batches == [1]
        assert all(max(v.values) < 0.1 for v in batch.vectors[10:20])
        # Synthesized vectors sit around score * 0.5.
        assert all(min(v.values) > 0.3 for v in batch.vectors[:10])
        assert all(min(v.values) > 0.3 for v in batch.vectors[20:])

    def test_repeated_failure_same_shape(self):
        client = StubSimilarityClient(failing())
        provider = make_provider(client, seed=None)
        texts = ["alpha value", "beta value", "gamma value"]
        first, second = provider.embed(texts), provider.embed(texts)
        assert len(first) == len(second) == 3
        assert [len(v) for v in first] == [len(v) for v in second] == [384] * 3

    def test_seeded_fallback_is_reproducible(self):
        texts = ["alpha value", "beta value"]
        a = make_provider(StubSimilarityClient(failing()), seed=7).embed(texts)
        b = make_provider(StubSimilarityClient(failing()), seed=7).embed(texts)
        assert [v.values for v in a] == [v.values for v in b]


class TestSynthesis:
    def test_higher_score_gives_larger_components(self):
        client = StubSimilarityClient(lambda source, sentences: [0.9, 0.1])
        batch = make_provider(client).embed(["same length A", "same length B"])
        high = sum(batch[0].values) / 384
        low = sum(batch[1].values) / 384
        assert high > low
        assert high == pytest.approx(0.45, abs=0.02)


class TestEmbedQuery:
    def test_returns_single_vector(self, stub_client):
        vector = make_provider(stub_client).embed_query("What is the capital?")
        assert vector.unit_id == "query"
        assert len(vector.values) == 384

    def test_exception_yields_fallback_vector(self):
        client = Mock()
        client.similarity.side_effect = RuntimeError("boom")
        vector = make_provider(client).embed_query("What is the capital?")
        assert len(vector.values) == 384
        assert max(vector.values) < 0.1

    def test_remote_failure_yields_fallback_vector(self):
        vector = make_provider(StubSimilarityClient(failing())).embed_query("question text")
        assert len(vector.values) == 384
        assert max(vector.values) < 0.1


def test_ok_results_pass_through_stub():
    client = StubSimilarityClient(lambda s, xs: Ok([0.2] * len(xs)))
    batch = make_provider(client).embed(["text value"])
    assert not batch.degraded


def test_short_score_list_treated_as_failure():
    client = StubSimilarityClient(lambda s, xs: [0.5])
    batch = make_provider(client).embed(["first text", "second text"])
    assert len(batch) == 2
    assert batch.degraded_batches == [0]
