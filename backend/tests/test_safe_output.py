"""Tests for temp-then-commit output handling."""

from pathlib import Path

import pytest

from clipmill.execution.errors import OutputCommitError
from clipmill.execution.output import SafeOutput


class TestSafeOutput:

    def test_temp_path_is_in_hidden_task_dir(self, tmp_path):
        safe = SafeOutput(str(tmp_path), prefix="stitch")
        temp_path = Path(safe.get_temp_output_path("a__b.mp4", "task-1"))

        assert temp_path.name == "a__b.mp4"
        assert temp_path.parent.parent == tmp_path
        assert temp_path.parent.name.startswith(".stitch_task-1_")
        assert temp_path.parent.is_dir()

    def test_same_task_reuses_temp_dir(self, tmp_path):
        safe = SafeOutput(str(tmp_path))
        first = Path(safe.get_temp_output_path("x.mp4", "t"))
        second = Path(safe.get_temp_output_path("y.mp4", "t"))
        assert first.parent == second.parent

    def test_commit_moves_file(self, tmp_path):
        safe = SafeOutput(str(tmp_path))
        temp_path = Path(safe.get_temp_output_path("out.mp4", "t"))
        temp_path.write_bytes(b"data")

        final_path = Path(safe.commit(str(temp_path)))

        assert final_path == tmp_path / "out.mp4"
        assert final_path.read_bytes() == b"data"
        assert not temp_path.exists()

    def test_commit_never_overwrites(self, tmp_path):
        (tmp_path / "out.mp4").write_bytes(b"old")
        safe = SafeOutput(str(tmp_path))
        temp_path = Path(safe.get_temp_output_path("out.mp4", "t"))
        temp_path.write_bytes(b"new")

        final_path = Path(safe.commit(str(temp_path)))

        assert final_path.name == "out_1.mp4"
        assert (tmp_path / "out.mp4").read_bytes() == b"old"

    def test_commit_missing_temp_file(self, tmp_path):
        safe = SafeOutput(str(tmp_path))
        temp_path = safe.get_temp_output_path("never.mp4", "t")
        with pytest.raises(OutputCommitError):
            safe.commit(temp_path)

    def test_cleanup_removes_temp_dir(self, tmp_path):
        safe = SafeOutput(str(tmp_path))
        temp_dir = Path(safe.get_temp_output_path("x.mp4", "t")).parent
        safe.cleanup("t")
        assert not temp_dir.exists()
        # second cleanup is a no-op
        safe.cleanup("t")

    def test_cleanup_all(self, tmp_path):
        safe = SafeOutput(str(tmp_path))
        dirs = [Path(safe.get_temp_output_path("x.mp4", tid)).parent for tid in ("a", "b")]
        safe.cleanup_all()
        assert not any(d.exists() for d in dirs)
        assert list(tmp_path.iterdir()) == []
