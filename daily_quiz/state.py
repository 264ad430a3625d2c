from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union
from .models import Question, QuestionKind, QuestionView, OptionMark, SessionView
from .services.grading import evaluate_answer, is_option_correct, normalize

EMPTY_SESSION_MESSAGE = "No questions available for today."

PendingAnswer = Union[str, List[str]]

class SessionError(Exception):
	code = "session_error"

class NoActiveQuestionError(SessionError):
	code = "no_active_question"

class AlreadySubmittedError(SessionError):
	code = "already_submitted"

class NotSubmittedError(SessionError):
	code = "not_submitted"

class EndOfSessionError(SessionError):
	code = "end_of_session"

class InvalidSelectionError(SessionError):
	code = "invalid_selection"

@dataclass
class Unanswered:
	pending: PendingAnswer = ""
	hint_visible: bool = False

@dataclass
class Submitted:
	correct: bool
	answer: Union[str, List[str], None]
	hint_visible: bool = False
	explanation_visible: bool = False

QuestionState = Union[Unanswered, Submitted]

@dataclass
class SubmitOutcome:
	correct: bool
	correct_count: int
	completed: bool
	has_next: bool
	expected_answer: Union[str, List[str]]

def _fresh_state(question: Question) -> Unanswered:
	if question.kind is QuestionKind.MULTI_CHOICE:
		return Unanswered(pending=[])
	return Unanswered(pending="")

def _dedupe(values: Sequence[str]) -> List[str]:
	seen: List[str] = []
	for v in values:
		if v not in seen:
			seen.append(v)
	return seen

class SessionData:
	def __init__(self, session_id: str) -> None:
		self.session_id = session_id
		self.quiz_date: Optional[str] = None
		self.questions: Tuple[Question, ...] = ()
		self.index = 0
		self.state: QuestionState = Unanswered()
		self.correct_count = 0
		self.completed = False

	@property
	def current_question(self) -> Optional[Question]:
		if self.index < len(self.questions):
			return self.questions[self.index]
		return None

	@property
	def is_last(self) -> bool:
		return self.index == len(self.questions) - 1

	@property
	def has_next(self) -> bool:
		return isinstance(self.state, Submitted) and not self.is_last

class SessionStore:
	def __init__(self, on_complete: Optional[Callable[[str, int], None]] = None) -> None:
		self.sessions: Dict[str, SessionData] = {}
		self.on_complete = on_complete

	def create_session(self, session_id: str) -> None:
		self.sessions[session_id] = SessionData(session_id)

	def has_session(self, session_id: str) -> bool:
		return session_id in self.sessions

	def load_session(self, session_id: str, questions: Sequence[Question], quiz_date: Optional[str] = None) -> None:
		session = self.sessions[session_id]
		session.quiz_date = quiz_date
		session.questions = tuple(questions)
		session.index = 0
		session.correct_count = 0
		session.completed = False
		session.state = _fresh_state(session.questions[0]) if session.questions else Unanswered()

	def question_count(self, session_id: str) -> int:
		return len(self.sessions[session_id].questions)

	def _active(self, session_id: str) -> Tuple[SessionData, Question]:
		session = self.sessions[session_id]
		question = session.current_question
		if question is None:
			raise NoActiveQuestionError(EMPTY_SESSION_MESSAGE)
		return session, question

	def _unanswered(self, session_id: str) -> Tuple[SessionData, Question, Unanswered]:
		session, question = self._active(session_id)
		if isinstance(session.state, Submitted):
			raise AlreadySubmittedError(f"question {question.id} already submitted")
		return session, question, session.state

	def _match_option(self, question: Question, value: str) -> str:
		for option in question.options or []:
			if normalize(option) == normalize(value):
				return option
		raise InvalidSelectionError(f"{value!r} is not an option of question {question.id}")

	def select(self, session_id: str, value: str) -> None:
		_, question, state = self._unanswered(session_id)
		if question.kind is QuestionKind.MULTI_CHOICE:
			raise InvalidSelectionError("multi-choice questions are answered by toggling options")
		if question.kind is QuestionKind.SINGLE_CHOICE:
			value = self._match_option(question, value)
		state.pending = value

	def toggle_multi_select(self, session_id: str, option: str) -> List[str]:
		_, question, state = self._unanswered(session_id)
		if question.kind is not QuestionKind.MULTI_CHOICE:
			raise InvalidSelectionError("only multi-choice questions support toggling")
		option = self._match_option(question, option)
		selected = list(state.pending) if isinstance(state.pending, list) else []
		if option in selected:
			selected.remove(option)
		else:
			selected.append(option)
		state.pending = selected
		return list(selected)

	def reveal_hint(self, session_id: str) -> Optional[str]:
		session, question = self._active(session_id)
		if question.hint:
			session.state.hint_visible = True
		return question.hint

	def submit(self, session_id: str, answer: Union[str, Sequence[str], None] = None) -> SubmitOutcome:
		session, question, state = self._unanswered(session_id)
		if answer is None:
			given = state.pending
		elif isinstance(answer, str):
			given = answer
		else:
			given = _dedupe(answer)
		correct = evaluate_answer(question, given)
		if correct:
			session.correct_count += 1
		session.state = Submitted(correct=correct, answer=given, hint_visible=state.hint_visible)
		if session.is_last:
			session.completed = True
			if self.on_complete is not None:
				self.on_complete(session_id, session.correct_count)
		return SubmitOutcome(
			correct=correct,
			correct_count=session.correct_count,
			completed=session.completed,
			has_next=session.has_next,
			expected_answer=question.answer,
		)

	def show_explanation(self, session_id: str) -> str:
		session, question = self._active(session_id)
		if not isinstance(session.state, Submitted):
			raise NotSubmittedError("the explanation is available after submitting")
		session.state.explanation_visible = True
		return question.explanation

	def advance(self, session_id: str) -> int:
		session, _ = self._active(session_id)
		if not isinstance(session.state, Submitted):
			raise NotSubmittedError("submit the current question before moving on")
		if session.is_last:
			raise EndOfSessionError("already at the last question")
		session.index += 1
		session.state = _fresh_state(session.questions[session.index])
		return session.index

	def view(self, session_id: str) -> SessionView:
		session = self.sessions[session_id]
		question = session.current_question
		if question is None:
			return SessionView(session_id=session_id, date=session.quiz_date, total=0, position=0, message=EMPTY_SESSION_MESSAGE)
		state = session.state
		submitted = isinstance(state, Submitted)
		q_view = QuestionView(
			id=question.id,
			context=question.context,
			prompt=question.prompt,
			kind=question.kind,
			options=question.options,
			has_hint=bool(question.hint),
			hint=question.hint if state.hint_visible else None,
		)
		if submitted:
			q_view.answer = question.answer
			if state.explanation_visible:
				q_view.explanation = question.explanation
			if question.options:
				chosen = state.answer if isinstance(state.answer, list) else [state.answer]
				q_view.option_marks = [
					OptionMark(option=o, selected=o in chosen, correct=is_option_correct(question, o))
					for o in question.options
				]
		pending = state.answer if submitted else state.pending
		return SessionView(
			session_id=session_id,
			date=session.quiz_date,
			total=len(session.questions),
			position=session.index,
			question=q_view,
			pending=list(pending) if isinstance(pending, list) else pending,
			submitted=submitted,
			correct=state.correct if submitted else None,
			correct_count=session.correct_count,
			completed=session.completed,
			has_next=session.has_next,
		)

session_store = SessionStore()
