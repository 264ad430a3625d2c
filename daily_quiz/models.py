from enum import Enum
from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator
from typing import Dict, List, Optional, Union

KIND_ALIASES = {
    "mcq": "single-choice",
    "multi": "multi-choice",
    "text": "free-text",
}

def _norm(text: str) -> str:
    return (text or '').strip().lower()

class QuestionKind(str, Enum):
    SINGLE_CHOICE = "single-choice"
    MULTI_CHOICE = "multi-choice"
    FREE_TEXT = "free-text"

    @property
    def is_choice(self) -> bool:
        return self is not QuestionKind.FREE_TEXT

class Question(BaseModel):
    """A single quiz item as stored in the daily question document."""

    id: str
    context: Optional[str] = None
    prompt: str = Field(validation_alias=AliasChoices("prompt", "question"))
    kind: QuestionKind = Field(validation_alias=AliasChoices("kind", "type"))
    options: Optional[List[str]] = None
    answer: Union[str, List[str]]
    hint: Optional[str] = None
    explanation: str = Field(validation_alias=AliasChoices("explanation", "solution"))
    order: Optional[int] = None

    @field_validator("kind", mode="before")
    @classmethod
    def map_source_kind(cls, value):
        if isinstance(value, str):
            return KIND_ALIASES.get(value.strip().lower(), value)
        return value

    @model_validator(mode="after")
    def check_answer_shape(self) -> "Question":
        if self.kind is QuestionKind.MULTI_CHOICE:
            if not isinstance(self.answer, list):
                raise ValueError("multi-choice answer must be a list of options")
        elif not isinstance(self.answer, str):
            raise ValueError(f"{self.kind.value} answer must be a single string")
        if self.kind.is_choice:
            if not self.options:
                raise ValueError(f"{self.kind.value} question requires options")
            known = {_norm(o) for o in self.options}
            expected = self.answer if isinstance(self.answer, list) else [self.answer]
            missing = [a for a in expected if _norm(a) not in known]
            if missing:
                raise ValueError(f"expected answer not among options: {missing}")
        return self

class StartSessionResponse(BaseModel):
    session_id: str
    date: str
    question_count: int
    message: Optional[str] = None

class OptionMark(BaseModel):
    option: str
    selected: bool
    correct: bool

class QuestionView(BaseModel):
    id: str
    context: Optional[str] = None
    prompt: str
    kind: QuestionKind
    options: Optional[List[str]] = None
    has_hint: bool = False
    hint: Optional[str] = None
    answer: Union[str, List[str], None] = None
    explanation: Optional[str] = None
    option_marks: Optional[List[OptionMark]] = None

class SessionView(BaseModel):
    session_id: str
    date: Optional[str] = None
    total: int
    position: int
    question: Optional[QuestionView] = None
    pending: Union[str, List[str], None] = None
    submitted: bool = False
    correct: Optional[bool] = None
    correct_count: int = 0
    completed: bool = False
    has_next: bool = False
    message: Optional[str] = None

class SessionActionRequest(BaseModel):
    session_id: str

class SelectRequest(BaseModel):
    session_id: str
    value: str

class ToggleRequest(BaseModel):
    session_id: str
    option: str

class SubmitAnswerRequest(BaseModel):
    session_id: str
    answer: Union[str, List[str], None] = None

class ProgressRecord(BaseModel):
    history: Dict[str, int] = Field(default_factory=dict)
    highest_insights: int = 0
    current_streak: int = 0
    last_quiz_date: Optional[str] = None

class ProgressView(BaseModel):
    current_streak: int
    highest_insights: int
    history: Dict[str, int]

class SubmitAnswerResponse(BaseModel):
    correct: bool
    correct_count: int
    completed: bool
    has_next: bool
    expected_answer: Union[str, List[str]]
    progress: Optional[ProgressView] = None
