"""
Pytest configuration for the csv_rag test suite.

Puts the project root on sys.path and provides stub remote services so no
test touches the network.
"""
import sys
from pathlib import Path

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import json

import httpx
import pytest

from csv_rag.errors import TransientError
from csv_rag.result import Err, Ok


class StubSimilarityClient:
    """
    Stand-in for SimilarityClient.

    ``responder(source_sentence, sentences)`` returns a list of scores, an
    ``Err``, or raises. Every call is recorded in ``calls``.
    """

    def __init__(self, responder=None):
        self.responder = responder or (lambda source, sentences: [0.5] * len(sentences))
        self.calls = []

    def similarity(self, source_sentence, sentences):
        self.calls.append((source_sentence, list(sentences)))
        result = self.responder(source_sentence, list(sentences))
        if isinstance(result, (Ok, Err)):
            return result
        return Ok(list(result))


def failing(message="service unavailable", status_code=503):
    return lambda source, sentences: Err(TransientError(message, status_code=status_code))


class FakeLLMClient:
    """Records prompts; replies with ``reply`` (a string, an Err, or an exception to raise)."""

    def __init__(self, reply="ok"):
        self.reply = reply
        self.calls = []
        self.closed = False

    def complete(self, system_prompt, user_prompt, **kwargs):
        self.calls.append({"system_prompt": system_prompt, "user_prompt": user_prompt, **kwargs})
        if isinstance(self.reply, Exception):
            raise self.reply
        if isinstance(self.reply, Err):
            return self.reply
        return Ok(self.reply)

    def close(self):
        self.closed = True


@pytest.fixture
def stub_client():
    return StubSimilarityClient()


@pytest.fixture
def no_sleep():
    return lambda seconds: None


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("HF_API_KEY", "HF_TOKEN", "GROQ_API_KEY", "EMBEDDING_SEED", "RAG_TOP_K",
                 "EMBEDDING_BATCH_SIZE", "EMBEDDING_BATCH_DELAY", "CHUNK_MAX_LENGTH"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def _scores_for_request(request):
    body = json.loads(request.content)
    return httpx.Response(200, json=[0.5] * len(body["inputs"]["sentences"]))


@pytest.fixture
def recorded_http_clients(monkeypatch):
    """Every httpx.Client built during the test, served by a mock transport."""
    real_client = httpx.Client
    created = []

    def factory(**kwargs):
        kwargs.setdefault("transport", httpx.MockTransport(_scores_for_request))
        client = real_client(**kwargs)
        created.append(client)
        return client

    monkeypatch.setattr(httpx, "Client", factory)
    return created
