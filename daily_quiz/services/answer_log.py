import os
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

logger = logging.getLogger("daily_quiz")

class SessionAnswerLog:
    """Append-only JSONL trail of what happened in each quiz session."""

    def __init__(self, log_dir: str | None) -> None:
        self.log_dir = os.path.abspath(log_dir) if log_dir else None

    @property
    def enabled(self) -> bool:
        return self.log_dir is not None

    def _session_log_path(self, session_id: str) -> str:
        return os.path.join(self.log_dir, f"session_{session_id}.jsonl")

    def append(self, session_id: str, record: Dict[str, Any]) -> None:
        if not self.enabled:
            return
        try:
            os.makedirs(self.log_dir, exist_ok=True)
            enriched = dict(record)
            enriched.setdefault("ts", datetime.now(timezone.utc).isoformat())
            with open(self._session_log_path(session_id), 'a', encoding='utf-8') as f:
                f.write(json.dumps(enriched, ensure_ascii=False) + "\n")
        except OSError:
            logger.exception("session_log_write_failed")

    def log_loaded(self, session_id: str, quiz_date: str, question_ids: list) -> None:
        self.append(session_id, {"event": "session_loaded", "date": quiz_date, "questions": question_ids})

    def log_answer(self, session_id: str, question_id: str, answer: Any, expected: Any, is_correct: bool) -> None:
        self.append(session_id, {"event": "answer", "question_id": question_id, "answer": answer, "expected": expected, "is_correct": is_correct})

    def log_completed(self, session_id: str, correct_count: int, total: int) -> None:
        self.append(session_id, {"event": "completed", "correct_count": correct_count, "total": total})
