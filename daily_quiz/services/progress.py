import os
import json
import math
import logging
import tempfile
from datetime import date, timedelta
from typing import Dict, Optional, Protocol
from ..models import ProgressRecord
from .grading import insights_for

logger = logging.getLogger("daily_quiz")

HISTORY_KEY = "insightHistory"
HIGHEST_KEY = "highestInsights"
STREAK_KEY = "currentStreak"
LAST_DATE_KEY = "lastQuizDate"

class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

class InMemoryKeyValueStore:
    def __init__(self, initial: Dict[str, str] | None = None) -> None:
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

class JsonFileKeyValueStore:
    """String key-value store persisted as one JSON object on disk.

    Every ``set`` rewrites the file through a temporary sibling and an atomic
    replace, so a crash mid-write leaves the previous contents intact.
    """

    def __init__(self, path: str) -> None:
        self.path = os.path.abspath(path)

    def _read(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            logger.exception("progress_store_read_failed")
            return {}
        if not isinstance(data, dict):
            logger.warning({"event": "progress_store_not_object", "path": self.path})
            return {}
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        directory = os.path.dirname(self.path)
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".progress-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

def _parse_int(raw: Optional[str], key: str) -> int:
    if raw is None:
        return 0
    try:
        return int(raw.strip())
    except ValueError:
        logger.warning({"event": "progress_counter_malformed", "key": key, "value": raw})
        return 0

def _parse_history(raw: Optional[str]) -> Dict[str, int]:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning({"event": "progress_history_malformed", "value": raw[:200]})
        return {}
    if not isinstance(data, dict):
        logger.warning({"event": "progress_history_not_object"})
        return {}
    history: Dict[str, int] = {}
    for day, score in data.items():
        if isinstance(score, bool) or not isinstance(score, (int, float)) or (isinstance(score, float) and not math.isfinite(score)):
            logger.debug({"event": "progress_history_entry_dropped", "date": day, "value": score})
            continue
        history[str(day)] = int(score)
    return history

def _parse_date(raw: Optional[str]) -> Optional[date]:
    if not raw:
        return None
    try:
        return date.fromisoformat(raw.strip())
    except ValueError:
        logger.warning({"event": "progress_last_date_malformed", "value": raw})
        return None

def load_progress(store: KeyValueStore) -> ProgressRecord:
    last = store.get(LAST_DATE_KEY)
    return ProgressRecord(
        history=_parse_history(store.get(HISTORY_KEY)),
        highest_insights=_parse_int(store.get(HIGHEST_KEY), HIGHEST_KEY),
        current_streak=_parse_int(store.get(STREAK_KEY), STREAK_KEY),
        last_quiz_date=last.strip() if last else None,
    )

def save_progress(store: KeyValueStore, record: ProgressRecord) -> None:
    store.set(HISTORY_KEY, json.dumps(record.history))
    store.set(HIGHEST_KEY, str(record.highest_insights))
    store.set(STREAK_KEY, str(record.current_streak))
    if record.last_quiz_date is not None:
        store.set(LAST_DATE_KEY, record.last_quiz_date)

def next_streak(streak: int, last_date: Optional[date], completion_date: date) -> int:
    if last_date is None:
        return 1
    if last_date == completion_date - timedelta(days=1):
        return streak + 1
    if last_date == completion_date:
        return streak
    return 1

def record_completion(record: ProgressRecord, correct_count: int, completion_date: date) -> ProgressRecord:
    """Apply one finished session to a progress record and return the new record.

    The input record is left untouched. Re-running a session on the same day
    overwrites that day's history entry and keeps the streak, so applying the
    same completion twice yields the same record.
    """
    insights = insights_for(correct_count)
    day = completion_date.isoformat()
    history = dict(record.history)
    history[day] = insights
    return ProgressRecord(
        history=history,
        highest_insights=max(record.highest_insights, insights),
        current_streak=next_streak(record.current_streak, _parse_date(record.last_quiz_date), completion_date),
        last_quiz_date=day,
    )

class ProgressTracker:
    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def snapshot(self) -> ProgressRecord:
        return load_progress(self.store)

    def record(self, correct_count: int, completion_date: date) -> ProgressRecord:
        before = self.snapshot()
        after = record_completion(before, correct_count, completion_date)
        save_progress(self.store, after)
        logger.info({
            "event": "progress_recorded",
            "date": after.last_quiz_date,
            "insights": after.history[after.last_quiz_date],
            "highest_insights": after.highest_insights,
            "streak": after.current_streak,
            "previous_streak": before.current_streak,
        })
        return after
