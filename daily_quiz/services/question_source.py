import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Protocol
import httpx
from pydantic import ValidationError
from ..config import Settings
from ..models import Question

logger = logging.getLogger("daily_quiz")

def day_document(data: Any, where: str) -> Optional[Dict[str, Any]]:
    """Normalize a stored day document to a ``key -> record`` mapping.

    Firebase serializes children with sequential integer keys as a JSON array,
    so a list is read back as ``{index: record}`` with its null holes skipped.
    """
    if isinstance(data, list):
        data = {str(i): rec for i, rec in enumerate(data) if rec is not None}
    elif data is not None and not isinstance(data, dict):
        raise ValueError(f"{where} is neither an object nor an array")
    return data or None

class QuestionSource(Protocol):
    async def fetch(self, day: str) -> Optional[Dict[str, Any]]:
        """Return the raw ``key -> record`` mapping stored for ``day``, or None."""
        ...

class FirebaseQuestionSource:
    """Reads ``questions/<day>`` from a Firebase Realtime Database over REST."""

    def __init__(self, base_url: str, auth: str | None = None, timeout: float = 10.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.auth = auth
        self.timeout = timeout
        self.transport = transport

    def url_for(self, day: str) -> str:
        return f"{self.base_url}/questions/{day}.json"

    async def fetch(self, day: str) -> Optional[Dict[str, Any]]:
        params = {"auth": self.auth} if self.auth else None
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            r = await client.get(self.url_for(day), params=params)
        r.raise_for_status()
        return day_document(r.json(), f"questions/{day}")

class JsonFileQuestionSource:
    """Local stand-in for the document store: a JSON file of ``{day: {key: record}}``."""

    def __init__(self, path: str) -> None:
        self.path = path

    def _read(self) -> Dict[str, Any]:
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} must contain a JSON object keyed by date")
        return data

    async def fetch(self, day: str) -> Optional[Dict[str, Any]]:
        data = await asyncio.to_thread(self._read)
        return day_document(data.get(day), f"{self.path}:{day}")

class StaticQuestionSource:
    def __init__(self, by_day: Dict[str, Any]) -> None:
        self.by_day = by_day

    async def fetch(self, day: str) -> Optional[Dict[str, Any]]:
        return day_document(self.by_day.get(day), day)

def _sort_key(question: Question) -> tuple:
    # array-shaped documents use index keys, which must order numerically
    key = (0, int(question.id), "") if question.id.isdigit() else (1, 0, question.id)
    return (question.order is None, question.order or 0, key)

def flatten_questions(data: Dict[str, Any]) -> List[Question]:
    questions: List[Question] = []
    for key, record in data.items():
        if not isinstance(record, dict):
            logger.warning({"event": "question_record_skipped", "key": key, "reason": "not_an_object"})
            continue
        try:
            questions.append(Question.model_validate({**record, "id": key}))
        except ValidationError as exc:
            logger.warning({"event": "question_record_skipped", "key": key, "reason": str(exc)})
    questions.sort(key=_sort_key)
    return questions

def build_question_source(settings: Settings) -> QuestionSource:
    if settings.question_source_file:
        return JsonFileQuestionSource(settings.question_source_file)
    if not settings.firebase_database_url:
        logger.warning({"event": "question_source_unconfigured", "message": "FIREBASE_DATABASE_URL is not set"})
    return FirebaseQuestionSource(
        settings.firebase_database_url or "",
        auth=settings.firebase_auth,
        timeout=settings.question_fetch_timeout,
    )
