"""Shared fixtures for the idiomquiz test suite."""

import asyncio
import logging
from typing import Any, Dict, List

import pytest

from idiomquiz.config import settings
from idiomquiz.errors import RetrievalFailure
from idiomquiz.sources import QuestionSource


def make_record(prompt: str, correct: int = 0, **content: Any) -> Dict[str, Any]:
    """Builds a raw record in the upstream API shape."""
    body = {
        "idiom": prompt,
        "sentence": f'"An example using {prompt}."',
        "options": ["first", "second", "third", "fourth"],
        "correct": correct,
        "explanation": f"What {prompt} means.",
        "tips": ["a tip"],
    }
    body.update(content)
    return {"_id": f"id-{prompt}", "content": body}


class FakeSource(QuestionSource):
    """In-memory source. A level maps to a list of records or an exception."""

    def __init__(self, responses: Dict[str, Any] = None):
        self.responses = dict(responses or {})
        self.calls: List[tuple] = []
        self.gates: Dict[str, asyncio.Event] = {}

    def hold(self, level: str) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[level] = gate
        return gate

    def levels(self) -> List[str]:
        return sorted(self.responses)

    async def fetch(self, level, category):
        self.calls.append((level, category))
        gate = self.gates.get(level)
        if gate is not None:
            await gate.wait()
        response = self.responses.get(level, [])
        if isinstance(response, Exception):
            raise response
        return list(response)


@pytest.fixture
def record():
    return make_record


@pytest.fixture
def fake_source():
    return FakeSource(
        {
            "beginner": [make_record(f"idiom {i}", correct=i % 4) for i in range(3)],
            "advanced": [make_record(f"hard idiom {i}", correct=1) for i in range(12)],
            "empty": [],
            "offline": RetrievalFailure(),
        }
    )


@pytest.fixture
def run():
    return asyncio.run


@pytest.fixture
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "LOG_DIR", str(tmp_path / "log"))
    monkeypatch.setattr(settings, "DB_DIR", str(tmp_path / "db"))
    yield settings
    logger = logging.getLogger("idiomquiz")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
