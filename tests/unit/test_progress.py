from __future__ import annotations

from pathlib import Path
from unittest.mock import Mock, patch

from bulk_upload.services.progress import ProgressTracker, is_tty_enabled


def test_is_tty_enabled_returns_stdout_isatty():
    with patch("sys.stdout.isatty", return_value=True):
        assert is_tty_enabled() is True

    with patch("sys.stdout.isatty", return_value=False):
        assert is_tty_enabled() is False


class TestProgressTracker:
    def test_init_with_tty_enabled(self):
        with patch("bulk_upload.services.progress.is_tty_enabled", return_value=True), \
             patch("bulk_upload.services.progress.tqdm") as mock_tqdm:
            tracker = ProgressTracker(3, description="Checking uploads")

            assert tracker.total_files == 3
            assert tracker.current_file == 0
            assert tracker.enabled is True
            mock_tqdm.assert_called_once_with(
                total=3,
                desc="Checking uploads",
                unit="file",
                leave=True,
                ncols=80,
                ascii=True,
            )

    def test_no_bar_without_tty(self):
        with patch("bulk_upload.services.progress.is_tty_enabled", return_value=False), \
             patch("bulk_upload.services.progress.tqdm") as mock_tqdm:
            tracker = ProgressTracker(3)
            tracker.start_file(Path("a.xlsx"))
            tracker.finish_file(valid=1)
            tracker.close()

            assert tracker.pbar is None
            assert tracker.current_file == 1
            mock_tqdm.assert_not_called()

    def test_file_lifecycle_updates_bar(self):
        pbar = Mock()
        with patch("bulk_upload.services.progress.is_tty_enabled", return_value=True), \
             patch("bulk_upload.services.progress.tqdm", return_value=pbar):
            with ProgressTracker(2) as tracker:
                tracker.start_file(Path("/data/january.xlsx"))
                pbar.set_description.assert_called_with("Validating files (january.xlsx)")

                tracker.finish_file(valid=1, invalid=0, failed=0)
                pbar.update.assert_called_once_with(1)
                pbar.set_description.assert_called_with("Validating files")
                pbar.set_postfix.assert_called_once_with(valid=1, invalid=0, failed=0)

            pbar.close.assert_called_once()
            assert tracker.pbar is None

    def test_finish_without_stats_skips_postfix(self):
        pbar = Mock()
        with patch("bulk_upload.services.progress.is_tty_enabled", return_value=True), \
             patch("bulk_upload.services.progress.tqdm", return_value=pbar):
            tracker = ProgressTracker(1)
            tracker.finish_file()
            pbar.set_postfix.assert_not_called()

    def test_close_is_idempotent(self):
        pbar = Mock()
        with patch("bulk_upload.services.progress.is_tty_enabled", return_value=True), \
             patch("bulk_upload.services.progress.tqdm", return_value=pbar):
            tracker = ProgressTracker(1)
            tracker.close()
            tracker.close()
            pbar.close.assert_called_once()
