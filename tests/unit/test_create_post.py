"""Unit tests for the create-post dialog's publish queue.

The dialog locks its inputs from the Publish click until the queued
publish has run, whatever its outcome.
"""

from unittest.mock import MagicMock, patch

import pytest

from voicefeed.core.models import PublishDraft
from voicefeed.ui.components.create_post import (
    PendingPublish,
    inputs_locked,
    queue_publish,
    run_pending,
)


@pytest.fixture
def pending():
    return PendingPublish(PublishDraft(title="Hello"), b"voice", "audio/webm")


class TestPublishQueue:
    """Verify the lock spans the click and the upload."""

    def test_unlocked_by_default(self):
        assert inputs_locked({}) is False

    def test_queue_locks_inputs(self, pending):
        """Inputs are disabled on the run after Publish is clicked."""
        state = {}
        queue_publish(state, pending)
        assert inputs_locked(state) is True

    def test_nothing_queued(self):
        with patch("voicefeed.ui.components.create_post._publish") as publish:
            assert run_pending(MagicMock(), {}) is None
        publish.assert_not_called()

    def test_run_publishes_then_unlocks(self, pending):
        """The queued draft is published and the lock released."""
        state = {}
        ctx = MagicMock()
        queue_publish(state, pending)
        with patch(
            "voicefeed.ui.components.create_post._publish", return_value=True
        ) as publish:
            assert run_pending(ctx, state) is True
        publish.assert_called_once_with(ctx, pending.draft, b"voice", "audio/webm")
        assert inputs_locked(state) is False

    def test_failed_publish_unlocks(self, pending):
        state = {}
        queue_publish(state, pending)
        with patch("voicefeed.ui.components.create_post._publish", return_value=False):
            assert run_pending(MagicMock(), state) is False
        assert inputs_locked(state) is False

    def test_unexpected_error_still_unlocks(self, pending):
        state = {}
        queue_publish(state, pending)
        with patch(
            "voicefeed.ui.components.create_post._publish", side_effect=RuntimeError("bug")
        ):
            with pytest.raises(RuntimeError):
                run_pending(MagicMock(), state)
        assert inputs_locked(state) is False
