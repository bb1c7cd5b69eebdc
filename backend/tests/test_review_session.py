# tests for the guided review session - state transitions and the async controller

from datetime import timedelta

import pytest

from afeia.models.review import ActionType
from afeia.services.errors import ActionExecutionError, InvalidTransitionError
from afeia.services.morning_review.review_session import (
    GuidedReview,
    ReviewStatus,
    next_client,
    previous_client,
    record_action,
    start_review,
)
from tests.factories import NOW, make_summary


def _summaries():
    return [
        make_summary("low", 30, "Dan"),
        make_summary("mid", 70, "Bob"),
        make_summary("top", 95, "Alice"),
        make_summary("edge", 60, "Cleo"),
    ]


def _ids(state):
    return [s.client.id for s in state.queue]


class TestStartReview:

    def test_queue_filtered_and_sorted(self):
        state = start_review(_summaries(), NOW)
        assert state.status == ReviewStatus.REVIEWING
        assert _ids(state) == ["top", "mid", "edge"]
        assert state.index == 0
        assert state.current.client.id == "top"
        assert state.started_at == NOW

    def test_empty_queue(self):
        state = start_review([make_summary("low", 59)], NOW)
        assert state.status == ReviewStatus.EMPTY
        assert state.current is None
        assert state.report() is None

    def test_custom_threshold(self):
        state = start_review(_summaries(), NOW, threshold=90)
        assert _ids(state) == ["top"]


class TestNavigation:

    def test_next_then_complete(self):
        state = start_review(_summaries(), NOW)
        state = next_client(state, NOW)
        state = next_client(state, NOW)
        assert state.current.client.id == "edge"
        assert state.is_last

        done = next_client(state, NOW + timedelta(minutes=4))
        assert done.status == ReviewStatus.COMPLETED
        assert done.current is None
        assert done.report().duration_seconds == 240

    def test_previous_is_noop_at_start(self):
        state = start_review(_summaries(), NOW)
        assert previous_client(state) == state

    def test_previous_goes_back(self):
        state = next_client(start_review(_summaries(), NOW), NOW)
        assert previous_client(state).index == 0

    def test_no_navigation_after_completion(self):
        state = start_review([make_summary("top", 95)], NOW)
        done = next_client(state, NOW)
        with pytest.raises(InvalidTransitionError):
            next_client(done, NOW)
        with pytest.raises(InvalidTransitionError):
            previous_client(done)

    def test_no_navigation_on_empty_review(self):
        with pytest.raises(InvalidTransitionError):
            next_client(start_review([], NOW), NOW)

    def test_transitions_do_not_mutate(self):
        state = start_review(_summaries(), NOW)
        next_client(state, NOW)
        assert state.index == 0


class TestRecordAction:

    def test_action_logged_without_moving(self):
        state = record_action(start_review(_summaries(), NOW), ActionType.SEND_MESSAGE, NOW)
        assert state.index == 0
        assert [(r.action_type, r.client_id) for r in state.log] == [("send_message", "top")]

    def test_snooze_moves_on(self):
        state = record_action(start_review(_summaries(), NOW), "snooze", NOW)
        assert state.current.client.id == "mid"

    def test_snooze_on_last_client_completes(self):
        state = record_action(start_review([make_summary("top", 95)], NOW), "snooze", NOW)
        assert state.status == ReviewStatus.COMPLETED
        assert state.report().snoozed_count == 1

    def test_unknown_action_rejected(self):
        with pytest.raises(ValueError):
            record_action(start_review(_summaries(), NOW), "dance", NOW)

    def test_completion_report(self):
        state = start_review(_summaries(), NOW)
        state = record_action(state, "send_message", NOW)
        state = record_action(state, "note_observation", NOW)
        state = next_client(state, NOW)
        state = record_action(state, "celebrate", NOW)
        state = record_action(state, "snooze", NOW)
        state = next_client(state, NOW + timedelta(seconds=90))

        report = state.report()
        assert report.reviewed_count == 3
        assert report.messages_count == 2
        assert report.notes_count == 1
        assert report.snoozed_count == 1
        assert report.actions_by_type == {
            "send_message": 1,
            "note_observation": 1,
            "celebrate": 1,
            "snooze": 1,
        }
        assert report.duration_seconds == 90


class TestGuidedReview:
    """async controller around the session state"""

    async def test_successful_command_is_recorded(self):
        review = GuidedReview(start_review(_summaries(), NOW))
        seen = []

        async def command(summary):
            seen.append(summary.client.id)

        state = await review.perform("send_message", NOW, command)
        assert seen == ["top"]
        assert len(state.log) == 1
        assert review.state is state

    async def test_failed_command_leaves_state_unchanged(self):
        review = GuidedReview(start_review(_summaries(), NOW))
        before = review.state

        async def command(summary):
            raise ActionExecutionError("Could not send the message")

        with pytest.raises(ActionExecutionError):
            await review.perform("send_message", NOW, command)
        assert review.state is before

    async def test_unexpected_failure_is_wrapped(self):
        review = GuidedReview(start_review(_summaries(), NOW))

        async def command(summary):
            raise RuntimeError("connection reset")

        with pytest.raises(ActionExecutionError):
            await review.perform("snooze", NOW, command)
        assert review.state.index == 0
        assert review.state.log == ()

    async def test_unknown_action_never_runs_command(self):
        review = GuidedReview(start_review(_summaries(), NOW))
        called = []

        async def command(summary):
            called.append(summary)

        with pytest.raises(ValueError):
            await review.perform("dance", NOW, command)
        assert called == []

    async def test_action_without_side_effect(self):
        review = GuidedReview(start_review(_summaries(), NOW))
        state = await review.perform(ActionType.OPEN_RECORD, NOW)
        assert state.log[0].action_type == "open_record"

    async def test_navigation(self):
        review = GuidedReview(start_review(_summaries(), NOW))
        await review.next(NOW)
        state = await review.previous()
        assert state.index == 0

    async def test_closed_review_rejects_everything(self):
        review = GuidedReview(start_review(_summaries(), NOW))
        review.close()
        assert review.closed
        with pytest.raises(InvalidTransitionError):
            await review.next(NOW)
        with pytest.raises(InvalidTransitionError):
            await review.perform("send_message", NOW)
