import asyncio
import random

import pytest

from idiomquiz.config import settings
from idiomquiz.errors import InvalidAnswerIndex, InvalidTransition, RetrievalFailure
from idiomquiz.models import Phase
from idiomquiz.sampler import QuestionSampler
from idiomquiz.session import GENERIC_ERROR, QuizSession
from idiomquiz.sources import QuestionSource


def new_session(source):
    return QuizSession(source, sampler=QuestionSampler(rng=random.Random(0)))


def answer_all(session, correct=True):
    while True:
        question = session.current_question
        if correct:
            index = question.correct_index
        else:
            index = (question.correct_index + 1) % len(question.options)
        session.submit_answer(index)
        if session.is_complete:
            return
        session.advance()


def test_starts_idle(fake_source):
    session = new_session(fake_source)

    view = session.view()
    assert view.phase == Phase.IDLE
    assert view.level is None
    assert view.question is None
    assert view.total_questions == 0


def test_select_level_loads_working_set(fake_source, run):
    session = new_session(fake_source)

    run(session.select_level("beginner"))

    assert session.phase == Phase.READY
    assert session.state.level == "beginner"
    assert session.total == 3
    assert session.state.position == 0
    assert session.state.correct_count == 0
    assert session.state.selected_answer_index is None
    assert fake_source.calls == [("beginner", "idiom-challenge")]


def test_three_correct_answers_score_100(fake_source, run):
    session = new_session(fake_source)
    run(session.select_level("beginner"))

    for step in range(3):
        assert not session.is_complete
        question = session.current_question
        assert session.submit_answer(question.correct_index) is True
        assert session.progress == pytest.approx((step + 1) / 3 * 100)
        if step < 2:
            session.advance()

    view = session.view()
    assert view.is_complete
    assert view.correct_count == 3
    assert view.score == 100
    assert view.passed is True
    assert [a.is_correct for a in view.answers] == [True, True, True]


def test_all_wrong_answers_fail(fake_source, run):
    session = new_session(fake_source)
    run(session.select_level("beginner"))

    answer_all(session, correct=False)

    view = session.view()
    assert view.score == 0
    assert view.passed is False
    assert view.answers[0].selected_option != view.answers[0].correct_option


def test_twelve_records_give_ten_questions(fake_source, run):
    session = new_session(fake_source)
    run(session.select_level("advanced"))

    prompts = [q.prompt for q in session.state.working_set]
    assert len(prompts) == 10
    assert len(set(prompts)) == 10
    assert set(prompts) <= {f"hard idiom {i}" for i in range(12)}


def test_second_submit_is_rejected(fake_source, run):
    session = new_session(fake_source)
    run(session.select_level("beginner"))
    question = session.current_question

    session.submit_answer(question.correct_index)
    with pytest.raises(InvalidTransition):
        session.submit_answer(question.correct_index)

    assert session.state.correct_count == 1
    assert len(session.state.answers) == 1


def test_invalid_option_index(fake_source, run):
    session = new_session(fake_source)
    run(session.select_level("beginner"))

    for bad in (-1, 4, True, "1"):
        with pytest.raises(InvalidAnswerIndex):
            session.submit_answer(bad)

    assert session.state.selected_answer_index is None


def test_advance_requires_answer(fake_source, run):
    session = new_session(fake_source)
    run(session.select_level("beginner"))

    with pytest.raises(InvalidTransition):
        session.advance()
    assert session.state.position == 0


def test_advance_rejected_once_complete(fake_source, run):
    session = new_session(fake_source)
    run(session.select_level("beginner"))
    answer_all(session)

    with pytest.raises(InvalidTransition):
        session.advance()
    assert session.state.position == 2


def test_progress_follows_answers(fake_source, run):
    session = new_session(fake_source)
    run(session.select_level("beginner"))

    assert session.progress == 0
    session.submit_answer(0)
    assert session.progress == pytest.approx(100 / 3)
    session.advance()
    assert session.progress == pytest.approx(100 / 3)
    assert session.view().is_correct is None


def test_reset_reuses_working_set(fake_source, run):
    session = new_session(fake_source)
    run(session.select_level("beginner"))
    working_set = list(session.state.working_set)
    answer_all(session)

    session.reset()

    assert session.phase == Phase.READY
    assert session.state.working_set == working_set
    assert session.state.position == 0
    assert session.state.correct_count == 0
    assert session.state.selected_answer_index is None
    assert session.state.answers == []
    assert len(fake_source.calls) == 1


def test_reset_needs_questions(fake_source, run):
    session = new_session(fake_source)
    with pytest.raises(InvalidTransition):
        session.reset()

    run(session.select_level("empty"))
    with pytest.raises(InvalidTransition):
        session.reset()
    assert session.phase == Phase.ERROR


def test_change_level_returns_to_idle(fake_source, run):
    session = new_session(fake_source)
    run(session.select_level("beginner"))
    session.submit_answer(0)

    session.change_level()

    assert session.phase == Phase.IDLE
    assert session.state.level is None
    assert session.state.working_set == []
    assert session.state.correct_count == 0


def test_answer_rejected_outside_ready(fake_source, run):
    session = new_session(fake_source)
    with pytest.raises(InvalidTransition):
        session.submit_answer(0)

    run(session.select_level("offline"))
    with pytest.raises(InvalidTransition):
        session.submit_answer(0)


def test_no_valid_records_then_retry(fake_source, record, run):
    fake_source.responses["beginner"] = [record("broken", correct=8), "junk"]
    session = new_session(fake_source)

    run(session.select_level("beginner"))

    assert session.phase == Phase.ERROR
    assert session.state.error_kind == "NoValidQuestions"
    assert session.state.error_message == "No valid questions available for this level."
    assert session.state.working_set == []

    fake_source.responses["beginner"] = [record(f"fixed {i}") for i in range(3)]
    run(session.retry())

    assert session.phase == Phase.READY
    assert session.state.error_message is None
    assert session.total == 3


def test_zero_records_is_no_valid_questions(fake_source, run):
    session = new_session(fake_source)
    run(session.select_level("empty"))

    assert session.state.error_kind == "NoValidQuestions"


def test_retrieval_failure_surfaces_error(fake_source, run):
    session = new_session(fake_source)
    run(session.select_level("offline"))

    view = session.view()
    assert view.phase == Phase.ERROR
    assert view.error_kind == "RetrievalFailure"
    assert view.error_message == "Failed to fetch questions"
    assert view.level == "offline"


def test_unexpected_source_error_gets_generic_message(fake_source, run):
    fake_source.responses["beginner"] = KeyError("boom")
    session = new_session(fake_source)

    run(session.select_level("beginner"))

    assert session.phase == Phase.ERROR
    assert session.state.error_message == GENERIC_ERROR


def test_retry_only_from_error(fake_source, run):
    session = new_session(fake_source)
    with pytest.raises(InvalidTransition):
        run(session.retry())

    run(session.select_level("beginner"))
    with pytest.raises(InvalidTransition):
        run(session.retry())


def test_selecting_again_discards_progress(fake_source, run):
    session = new_session(fake_source)
    run(session.select_level("beginner"))
    session.submit_answer(session.current_question.correct_index)

    run(session.select_level("advanced"))

    assert session.state.level == "advanced"
    assert session.state.correct_count == 0
    assert session.state.answers == []


def test_transitions_rejected_while_loading(fake_source):
    async def scenario():
        gate = fake_source.hold("beginner")
        session = new_session(fake_source)
        task = asyncio.create_task(session.select_level("beginner"))
        await asyncio.sleep(0)

        assert session.phase == Phase.LOADING
        for action in (lambda: session.submit_answer(0), session.advance, session.reset):
            with pytest.raises(InvalidTransition):
                action()

        gate.set()
        await task
        assert session.phase == Phase.READY

    asyncio.run(scenario())


def test_stale_response_is_discarded(fake_source):
    async def scenario():
        gate = fake_source.hold("beginner")
        session = new_session(fake_source)
        slow = asyncio.create_task(session.select_level("beginner"))
        await asyncio.sleep(0)

        await session.select_level("advanced")
        gate.set()
        await slow

        assert session.phase == Phase.READY
        assert session.state.level == "advanced"
        assert session.total == 10

    asyncio.run(scenario())


def test_late_response_after_change_level_is_discarded(fake_source):
    async def scenario():
        gate = fake_source.hold("beginner")
        session = new_session(fake_source)
        slow = asyncio.create_task(session.select_level("beginner"))
        await asyncio.sleep(0)

        session.change_level()
        gate.set()
        await slow

        assert session.phase == Phase.IDLE
        assert session.state.working_set == []

    asyncio.run(scenario())


def test_late_failure_does_not_clobber_newer_request(fake_source):
    async def scenario():
        fake_source.responses["slow-offline"] = RetrievalFailure()
        gate = fake_source.hold("slow-offline")
        session = new_session(fake_source)
        slow = asyncio.create_task(session.select_level("slow-offline"))
        await asyncio.sleep(0)

        await session.select_level("beginner")
        gate.set()
        await slow

        assert session.phase == Phase.READY
        assert session.state.error_message is None

    asyncio.run(scenario())


def test_sessions_are_isolated(fake_source, run):
    first = new_session(fake_source)
    second = new_session(fake_source)
    run(first.select_level("beginner"))
    run(second.select_level("beginner"))

    first.submit_answer(first.current_question.correct_index)

    assert second.state.correct_count == 0
    assert second.state.selected_answer_index is None


class NonListSource(QuestionSource):
    async def fetch(self, level, category):
        return 5


def test_non_iterable_payload_ends_in_error(run):
    session = new_session(NonListSource())

    run(session.select_level("beginner"))

    assert session.phase == Phase.ERROR
    assert session.state.error_message == GENERIC_ERROR
    assert session.state.error_kind == "TypeError"
    session.change_level()
    assert session.phase == Phase.IDLE


def test_category_defaults_to_settings(fake_source, monkeypatch, run):
    monkeypatch.setattr(settings, "QUIZ_CATEGORY", "phrasal-verbs")
    session = QuizSession(fake_source)

    run(session.select_level("beginner"))

    assert fake_source.calls == [("beginner", "phrasal-verbs")]
