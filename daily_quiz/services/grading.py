from typing import Iterable, List, Union
from ..models import Question, QuestionKind

INSIGHTS_PER_CORRECT = 10

Answer = Union[str, Iterable[str], None]

def normalize(text: str) -> str:
    return (text or "").strip().lower()

def _normalize_all(values: Iterable[str]) -> List[str]:
    return [normalize(v) for v in values]

def evaluate_answer(question: Question, answer: Answer) -> bool:
    if question.kind is QuestionKind.MULTI_CHOICE:
        if answer is None or isinstance(answer, str):
            return False
        expected = _normalize_all(question.answer)
        given = _normalize_all(answer)
        return len(expected) == len(given) and all(a in given for a in expected)
    if not isinstance(answer, str):
        return False
    return normalize(answer) == normalize(question.answer)

def is_option_correct(question: Question, option: str) -> bool:
    """Whether an option belongs to the expected answer, used for review marks."""
    if isinstance(question.answer, list):
        return normalize(option) in _normalize_all(question.answer)
    return normalize(option) == normalize(question.answer)

def insights_for(correct_count: int) -> int:
    return correct_count * INSIGHTS_PER_CORRECT
