import pytest

from batchcall.core.models import ProgressSnapshot
from batchcall.core.progress import ProgressTracker


class TestProgressTracker:
    """Tests for progress snapshots and callbacks."""

    def test_snapshots_and_callback_arguments(self) -> None:
        """Test the start/finish snapshot sequence for two groups."""
        events = []
        tracker = ProgressTracker(
            total=3,
            on_progress=lambda completed, total, in_flight: events.append(
                (completed, total, in_flight)
            ),
            show_progress=False,
        )

        tracker.group_started(0, ["a", "b"])
        tracker.group_finished(0, 2)
        tracker.group_started(1, ["c"])
        tracker.group_finished(1, 1)

        assert events == [(0, 3, ["a", "b"]), (2, 3, []), (2, 3, ["c"]), (3, 3, [])]
        assert tracker.snapshots[0] == ProgressSnapshot(
            completed=0, total=3, in_flight=("a", "b"), group_index=0
        )
        assert tracker.snapshots[-1].group_index == 1
        assert tracker.completed == 3

    def test_without_callback(self) -> None:
        """Test that snapshots are recorded even without a callback."""
        tracker = ProgressTracker(total=1, show_progress=False)

        tracker.group_started(0, ["a"])
        tracker.group_finished(0, 1)

        assert [s.completed for s in tracker.snapshots] == [0, 1]

    @pytest.mark.parametrize(argnames="amount", argvalues=[-1, 3])
    def test_invalid_advance_raises(self, amount: int) -> None:
        """Test that progress cannot go backwards or past the total."""
        tracker = ProgressTracker(total=2, show_progress=False)

        with pytest.raises(ValueError):
            tracker.group_finished(0, amount)

    def test_progress_bar_is_closed(self) -> None:
        """Test that the tqdm bar follows progress and is released."""
        tracker = ProgressTracker(total=2, show_progress=True)

        tracker.group_finished(0, 2)
        assert tracker._pbar is not None
        assert tracker._pbar.n == 2

        tracker.close()
        assert tracker._pbar is None

    def test_callback_error_is_logged_and_tracking_continues(self) -> None:
        """Test that a failing callback does not interrupt progress tracking."""

        def on_progress(completed: int, total: int, in_flight: list[str]) -> None:
            raise RuntimeError("ui queue closed")

        tracker = ProgressTracker(total=2, on_progress=on_progress, show_progress=False)

        tracker.group_started(0, ["a", "b"])
        tracker.group_finished(0, 2)

        assert tracker.completed == 2
        assert len(tracker.snapshots) == 2
