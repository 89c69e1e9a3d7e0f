import asyncio
import glob
import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, List

import httpx
import pandas as pd

from .errors import RetrievalFailure

logger = logging.getLogger(__name__)

LIST_SEPARATOR = "|"


# --- Source contract ---
class QuestionSource(ABC):
    """Where raw question records come from. Records are untrusted."""

    @abstractmethod
    async def fetch(self, level: str, category: str) -> List[Dict[str, Any]]:
        pass

    def levels(self) -> List[str]:
        return []


# --- Local question bank ---
class LocalQuestionSource(QuestionSource):
    """Reads ``<level>.json`` and ``<level>.csv`` files from a directory."""

    def __init__(self, directory: str):
        self.directory = directory

    def levels(self) -> List[str]:
        if not os.path.isdir(self.directory):
            logger.warning(f"Question directory {self.directory} does not exist.")
            return []
        names = set()
        for pattern in ("*.json", "*.csv"):
            for file_path in glob.glob(os.path.join(self.directory, pattern)):
                names.add(os.path.splitext(os.path.basename(file_path))[0])
        return sorted(names)

    async def fetch(self, level: str, category: str) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._load, level, category)

    def _load(self, level: str, category: str) -> List[Dict[str, Any]]:
        # levels map straight onto file names, so keep them inside the bank
        if os.path.basename(level) != level or level.startswith("."):
            logger.error(f"Rejected level name {level!r}")
            return []

        records: List[Dict[str, Any]] = []
        json_path = os.path.join(self.directory, f"{level}.json")
        csv_path = os.path.join(self.directory, f"{level}.csv")
        if os.path.exists(json_path):
            records.extend(self._load_json(json_path))
        if os.path.exists(csv_path):
            records.extend(self._load_csv(csv_path))

        matching = [r for r in records if _matches_category(r, category)]
        logger.info(f"Loaded {len(matching)} raw records for level {level}")
        return matching

    @staticmethod
    def _load_json(file_path: str) -> List[Any]:
        try:
            with open(file_path, encoding="utf-8") as fh:
                payload = json.load(fh)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load {file_path}: {e}")
            raise RetrievalFailure() from e

        if isinstance(payload, dict):
            payload = payload.get("data")
        if not isinstance(payload, list):
            logger.error(f"Skipping {file_path}: expected a list of records.")
            raise RetrievalFailure()
        return payload

    @staticmethod
    def _load_csv(file_path: str) -> List[Dict[str, Any]]:
        try:
            df = pd.read_csv(file_path, encoding="utf-8", dtype=str, keep_default_na=False)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load {file_path}: {e}")
            raise RetrievalFailure() from e
        return [_csv_row_to_record(row) for row in df.to_dict("records")]


def _matches_category(record: Any, category: str) -> bool:
    if not isinstance(record, dict):
        # let the normalizer report it
        return True
    record_type = record.get("type")
    return record_type in (None, "", category)


def _split(value: str) -> List[str]:
    return [part.strip() for part in value.split(LIST_SEPARATOR) if part.strip()]


def _csv_row_to_record(row: Dict[str, str]) -> Dict[str, Any]:
    """Rebuilds the upstream wire shape from a flat CSV row."""
    content: Dict[str, Any] = {
        key: row[key] for key in ("idiom", "sentence", "explanation") if key in row
    }
    if "options" in row:
        content["options"] = _split(row["options"])
    if "tips" in row:
        content["tips"] = _split(row["tips"])
    if "correct" in row:
        raw_correct = row["correct"].strip()
        content["correct"] = int(raw_correct) if raw_correct.isdecimal() else raw_correct

    record: Dict[str, Any] = {"content": content}
    if row.get("id"):
        record["id"] = row["id"]
    if row.get("type"):
        record["type"] = row["type"]
    return record


# --- Remote question API ---
class HttpQuestionSource(QuestionSource):
    """Client for the questions API: ``GET /questions?englishLevel=..&type=..``."""

    def __init__(self, base_url: str, timeout: float = 10.0, transport=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def fetch(self, level: str, category: str) -> List[Dict[str, Any]]:
        params = {"englishLevel": level, "type": category}
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self.transport
        ) as client:
            try:
                response = await client.get("/questions", params=params)
                response.raise_for_status()
                payload = response.json()
            except (httpx.HTTPError, ValueError) as exc:
                logger.exception("Question API request failed")
                raise RetrievalFailure() from exc

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list):
            logger.error("Question API response has no data list")
            raise RetrievalFailure()
        return data


class SourceFactory:
    """Picks the question source named in the settings."""

    @staticmethod
    def create(settings) -> QuestionSource:
        if settings.QUESTION_SOURCE == "http":
            return HttpQuestionSource(settings.QUESTIONS_API_URL, timeout=settings.HTTP_TIMEOUT)
        if settings.QUESTION_SOURCE != "local":
            logger.warning(
                f"Unknown QUESTION_SOURCE {settings.QUESTION_SOURCE!r}, using local bank."
            )
        return LocalQuestionSource(settings.QUESTIONS_DIR)
