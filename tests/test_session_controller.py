"""Tests for the quiz session state machine."""

from __future__ import annotations

import pytest

from daily_quiz.state import (
    AlreadySubmittedError,
    EndOfSessionError,
    InvalidSelectionError,
    NoActiveQuestionError,
    NotSubmittedError,
    SessionStore,
    Submitted,
    Unanswered,
)


@pytest.fixture
def completions():
    """Collects (session_id, correct_count) pairs passed to the completion hook."""
    return []


@pytest.fixture
def store(completions, questions):
    store = SessionStore(on_complete=lambda sid, count: completions.append((sid, count)))
    store.create_session("s1")
    store.load_session("s1", questions, quiz_date="2024-05-01")
    return store


def test_questions_are_served_in_declared_order(store):
    ids = [q.id for q in store.sessions["s1"].questions]
    assert ids == ["q1", "q2", "q3"]
    assert store.view("s1").question.id == "q1"


def test_view_carries_quiz_date(store):
    assert store.view("s1").date == "2024-05-01"


def test_fresh_question_is_unanswered(store):
    state = store.sessions["s1"].state
    assert isinstance(state, Unanswered)
    view = store.view("s1")
    assert view.submitted is False
    assert view.correct is None
    assert view.question.answer is None
    assert view.question.explanation is None
    assert view.question.hint is None
    assert view.question.has_hint is True


def test_full_session_counts_correct_answers_and_fires_completion(store, completions):
    store.select("s1", "4")
    outcome = store.submit("s1")
    assert outcome.correct is True
    assert outcome.has_next is True
    assert completions == []
    store.advance("s1")

    store.toggle_multi_select("s1", "Mean")
    outcome = store.submit("s1")
    assert outcome.correct is False
    store.advance("s1")

    outcome = store.submit("s1", "  standard deviation ")
    assert outcome.correct is True
    assert outcome.completed is True
    assert outcome.has_next is False
    assert outcome.correct_count == 2
    assert completions == [("s1", 2)]


def test_last_answer_correct_is_included_in_final_count(store, completions):
    store.submit("s1", "4")
    store.advance("s1")
    store.submit("s1", ["median", "mean"])
    store.advance("s1")
    store.submit("s1", "Standard Deviation")
    assert completions == [("s1", 3)]


def test_resubmission_is_rejected_until_advance(store):
    store.submit("s1", "2")
    with pytest.raises(AlreadySubmittedError):
        store.submit("s1", "4")
    with pytest.raises(AlreadySubmittedError):
        store.select("s1", "4")
    assert store.sessions["s1"].correct_count == 0


def test_advance_requires_submission(store):
    with pytest.raises(NotSubmittedError):
        store.advance("s1")


def test_advance_past_last_question_is_invalid(store):
    for answer in ("4", ["Mean", "Median"]):
        store.submit("s1", answer)
        store.advance("s1")
    store.submit("s1", "variance")
    with pytest.raises(EndOfSessionError):
        store.advance("s1")
    assert store.sessions["s1"].index == 2


def test_advance_clears_per_question_state(store):
    store.reveal_hint("s1")
    store.select("s1", "4")
    store.submit("s1")
    store.show_explanation("s1")
    store.advance("s1")
    state = store.sessions["s1"].state
    assert isinstance(state, Unanswered)
    assert state.pending == []
    assert state.hint_visible is False


def test_toggle_adds_and_removes_options(store):
    store.submit("s1", "4")
    store.advance("s1")
    assert store.toggle_multi_select("s1", "Mean") == ["Mean"]
    assert store.toggle_multi_select("s1", "median") == ["Mean", "Median"]
    assert store.toggle_multi_select("s1", "Mean") == ["Median"]


def test_select_rejects_unknown_option(store):
    with pytest.raises(InvalidSelectionError):
        store.select("s1", "42")


def test_toggle_only_for_multi_choice(store):
    with pytest.raises(InvalidSelectionError):
        store.toggle_multi_select("s1", "4")


def test_select_rejected_for_multi_choice(store):
    store.submit("s1", "4")
    store.advance("s1")
    with pytest.raises(InvalidSelectionError):
        store.select("s1", "Mean")


def test_explanation_only_after_submission(store):
    with pytest.raises(NotSubmittedError):
        store.show_explanation("s1")
    store.submit("s1", "4")
    assert store.show_explanation("s1").startswith("4 appears")
    view = store.view("s1")
    assert view.question.explanation.startswith("4 appears")


def test_hint_reveal_survives_submission(store):
    assert store.reveal_hint("s1") == "The most frequent value."
    store.submit("s1", "4")
    state = store.sessions["s1"].state
    assert isinstance(state, Submitted)
    assert state.hint_visible is True
    assert store.view("s1").question.hint == "The most frequent value."


def test_submitted_view_marks_options(store):
    store.submit("s1", "2")
    view = store.view("s1")
    assert view.submitted is True
    assert view.correct is False
    assert view.question.answer == "4"
    marks = {m.option: (m.selected, m.correct) for m in view.question.option_marks}
    assert marks["2"] == (True, False)
    assert marks["4"] == (False, True)
    assert marks["9"] == (False, False)


def test_duplicate_selections_are_collapsed(store):
    store.submit("s1", "4")
    store.advance("s1")
    outcome = store.submit("s1", ["Mean", "Mean", "Median"])
    assert outcome.correct is True


def test_empty_session_reports_no_questions():
    store = SessionStore()
    store.create_session("empty")
    store.load_session("empty", [])
    view = store.view("empty")
    assert view.total == 0
    assert view.question is None
    assert view.message == "No questions available for today."
    with pytest.raises(NoActiveQuestionError):
        store.submit("empty", "anything")
    with pytest.raises(NoActiveQuestionError):
        store.advance("empty")


def test_single_question_session_completes_on_first_submit(questions, completions):
    store = SessionStore(on_complete=lambda sid, count: completions.append((sid, count)))
    store.create_session("one")
    store.load_session("one", questions[:1])
    outcome = store.submit("one", "2")
    assert outcome.completed is True
    assert completions == [("one", 0)]
