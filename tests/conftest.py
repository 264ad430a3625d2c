"""Shared fixtures: a day's worth of question records as the document store holds them."""

from __future__ import annotations

from typing import Any, Dict, List

import pytest

from daily_quiz.models import Question
from daily_quiz.services.question_source import flatten_questions


@pytest.fixture
def day_records() -> Dict[str, Dict[str, Any]]:
    """Three records in the store's native field names, deliberately out of order."""
    return {
        "q3": {
            "question": "Name the measure of spread in the same units as the data.",
            "type": "text",
            "answer": "Standard Deviation",
            "solution": "The standard deviation is the square root of the variance.",
            "order": 3,
        },
        "q1": {
            "context": "A dataset has values 2, 4, 4, 4, 5, 5, 7, 9.",
            "question": "What is the mode?",
            "type": "mcq",
            "options": ["2", "4", "5", "9"],
            "answer": "4",
            "hint": "The most frequent value.",
            "solution": "4 appears three times, more than any other value.",
            "order": 1,
        },
        "q2": {
            "question": "Which of these are measures of central tendency?",
            "type": "multi",
            "options": ["Mean", "Median", "Range", "Variance"],
            "answer": ["Mean", "Median"],
            "solution": "Range and variance describe spread, not centre.",
            "order": 2,
        },
    }


@pytest.fixture
def questions(day_records) -> List[Question]:
    """The flattened, ordered question list for ``day_records``."""
    return flatten_questions(day_records)
