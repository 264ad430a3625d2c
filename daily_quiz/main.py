from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import ORJSONResponse
from fastapi.middleware.cors import CORSMiddleware
import logging
import uuid
from time import perf_counter
from datetime import date, datetime
from zoneinfo import ZoneInfo
import httpx
from .state import session_store, SessionError, InvalidSelectionError, EMPTY_SESSION_MESSAGE
from .models import (
	StartSessionResponse,
	SessionView,
	SessionActionRequest,
	SelectRequest,
	ToggleRequest,
	SubmitAnswerRequest,
	SubmitAnswerResponse,
	ProgressRecord,
	ProgressView,
)
from .services.question_source import build_question_source, flatten_questions
from .services.progress import JsonFileKeyValueStore, ProgressTracker
from .services.answer_log import SessionAnswerLog
from .config import settings

logging.basicConfig(level=getattr(logging, settings.log_level, logging.DEBUG), format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger("daily_quiz")

app = FastAPI(default_response_class=ORJSONResponse)

app.add_middleware(
	CORSMiddleware,
	allow_origins=["*"],
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

question_source = build_question_source(settings)
progress_tracker = ProgressTracker(JsonFileKeyValueStore(settings.progress_store_path))
answer_log = SessionAnswerLog(settings.answer_log_dir)

def current_quiz_date() -> date:
	return datetime.now(ZoneInfo(settings.quiz_timezone)).date()

def _progress_view(record: ProgressRecord) -> ProgressView:
	return ProgressView(
		current_streak=record.current_streak,
		highest_insights=record.highest_insights,
		history=record.history,
	)

def record_session_completion(session_id: str, correct_count: int) -> None:
	"""Completion hook for the session store: fold the final score into progress."""
	completion_date = current_quiz_date()
	try:
		progress_tracker.record(correct_count, completion_date)
	except OSError:
		logger.exception("progress_record_failed", extra={"session_id": session_id})

session_store.on_complete = record_session_completion

def _require_session(session_id: str) -> None:
	if not session_store.has_session(session_id):
		raise HTTPException(status_code=404, detail="session_not_found")

def _as_http_error(exc: SessionError) -> HTTPException:
	status_code = 400 if isinstance(exc, InvalidSelectionError) else 409
	logger.debug({"event": "session_action_rejected", "code": exc.code, "reason": str(exc)})
	return HTTPException(status_code=status_code, detail=exc.code)

@app.on_event("startup")
def on_startup() -> None:
	local_time = datetime.now(ZoneInfo(settings.quiz_timezone)).isoformat()
	logger.info({
		"event": "api_startup",
		"local_time": local_time,
		"timezone": settings.quiz_timezone,
		"question_source": type(question_source).__name__,
		"progress_store": settings.progress_store_path,
		"answer_log": answer_log.enabled,
	})

@app.middleware("http")
async def timing_middleware(request: Request, call_next):
	start = perf_counter()
	response = await call_next(request)
	duration_ms = int((perf_counter() - start) * 1000)
	logger.debug({
		"event": "request_timing",
		"method": request.method,
		"path": request.url.path,
		"status_code": response.status_code,
		"duration_ms": duration_ms,
	})
	return response

@app.post("/api/session/start", response_model=StartSessionResponse)
async def start_session():
	session_id = str(uuid.uuid4())
	session_store.create_session(session_id)
	day = current_quiz_date().isoformat()
	questions = []
	try:
		fetch_start = perf_counter()
		data = await question_source.fetch(day)
		if data is None:
			logger.info({"event": "no_questions_for_date", "session_id": session_id, "date": day})
		else:
			questions = flatten_questions(data)
			logger.debug({
				"event": "questions_fetched",
				"session_id": session_id,
				"date": day,
				"records": len(data),
				"count": len(questions),
				"duration_ms": int((perf_counter() - fetch_start) * 1000),
			})
	except (httpx.HTTPError, OSError, ValueError):
		logger.exception("question_fetch_failed", extra={"session_id": session_id, "date": day})
	session_store.load_session(session_id, questions, quiz_date=day)
	if questions:
		answer_log.log_loaded(session_id, day, [q.id for q in questions])
	logger.debug({"event": "session_started", "session_id": session_id, "question_count": len(questions)})
	return StartSessionResponse(
		session_id=session_id,
		date=day,
		question_count=len(questions),
		message=None if questions else EMPTY_SESSION_MESSAGE,
	)

@app.get("/api/session/view", response_model=SessionView)
def get_session_view(session_id: str):
	_require_session(session_id)
	return session_store.view(session_id)

@app.post("/api/quiz/select", response_model=SessionView)
def select_answer(payload: SelectRequest):
	_require_session(payload.session_id)
	try:
		session_store.select(payload.session_id, payload.value)
	except SessionError as exc:
		raise _as_http_error(exc)
	return session_store.view(payload.session_id)

@app.post("/api/quiz/toggle", response_model=SessionView)
def toggle_option(payload: ToggleRequest):
	_require_session(payload.session_id)
	try:
		selected = session_store.toggle_multi_select(payload.session_id, payload.option)
	except SessionError as exc:
		raise _as_http_error(exc)
	logger.debug({"event": "toggle_option", "session_id": payload.session_id, "option": payload.option, "selected": selected})
	return session_store.view(payload.session_id)

@app.post("/api/quiz/hint", response_model=SessionView)
def reveal_hint(payload: SessionActionRequest):
	_require_session(payload.session_id)
	try:
		session_store.reveal_hint(payload.session_id)
	except SessionError as exc:
		raise _as_http_error(exc)
	return session_store.view(payload.session_id)

@app.post("/api/quiz/submit", response_model=SubmitAnswerResponse)
def submit_answer(payload: SubmitAnswerRequest):
	_require_session(payload.session_id)
	session = session_store.sessions[payload.session_id]
	question = session.current_question
	try:
		outcome = session_store.submit(payload.session_id, payload.answer)
	except SessionError as exc:
		raise _as_http_error(exc)
	submitted_answer = session.state.answer
	logger.debug({
		"event": "submit_answer",
		"session_id": payload.session_id,
		"question_id": question.id,
		"kind": question.kind.value,
		"answer": submitted_answer,
		"is_correct": outcome.correct,
		"correct_count": outcome.correct_count,
		"completed": outcome.completed,
	})
	answer_log.log_answer(payload.session_id, question.id, submitted_answer, question.answer, outcome.correct)
	progress = None
	if outcome.completed:
		answer_log.log_completed(payload.session_id, outcome.correct_count, session_store.question_count(payload.session_id))
		progress = _progress_view(progress_tracker.snapshot())
	return SubmitAnswerResponse(
		correct=outcome.correct,
		correct_count=outcome.correct_count,
		completed=outcome.completed,
		has_next=outcome.has_next,
		expected_answer=outcome.expected_answer,
		progress=progress,
	)

@app.post("/api/quiz/explanation", response_model=SessionView)
def show_explanation(payload: SessionActionRequest):
	_require_session(payload.session_id)
	try:
		session_store.show_explanation(payload.session_id)
	except SessionError as exc:
		raise _as_http_error(exc)
	return session_store.view(payload.session_id)

@app.post("/api/quiz/next", response_model=SessionView)
def next_question(payload: SessionActionRequest):
	_require_session(payload.session_id)
	try:
		index = session_store.advance(payload.session_id)
	except SessionError as exc:
		raise _as_http_error(exc)
	logger.debug({"event": "advance", "session_id": payload.session_id, "position": index})
	return session_store.view(payload.session_id)

@app.get("/api/progress", response_model=ProgressView)
def get_progress():
	return _progress_view(progress_tracker.snapshot())
