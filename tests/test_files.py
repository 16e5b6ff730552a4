"""Tests for run workspaces and path helpers."""

import os

from proposal_engine.utils.files import RunWorkspace, confined_path


class TestRunWorkspace:
    """Tests for the per-run scratch directory."""

    def test_concurrent_runs_keep_separate_artifacts(self, output_dir):
        """Test two runs on one output directory never share a temp file."""
        first = RunWorkspace(output_dir)
        second = RunWorkspace(output_dir)

        first_cover = first.temp_path("frontpage.pdf")
        second_cover = second.temp_path("frontpage.pdf")
        first_cover.write_bytes(b"first run")
        second_cover.write_bytes(b"second run")

        assert first.root != second.root
        assert first_cover != second_cover
        assert first_cover.read_bytes() == b"first run"
        assert second_cover.read_bytes() == b"second run"
        assert not first.is_temp_artifact(second_cover)

        first.close()

        assert not first.root.exists()
        assert second_cover.read_bytes() == b"second run"
        second.close()
        assert not (output_dir / ".work").exists()

    def test_repeated_name_numbered(self, output_dir):
        with RunWorkspace(output_dir) as workspace:
            assert workspace.temp_path("Cover.pdf").name == "temp_Cover.pdf"
            assert workspace.temp_path("Cover.pdf").name == "temp_2_Cover.pdf"


class TestConfinedPath:
    """Tests for keeping configured names inside a base directory."""

    def test_relative_name_allowed(self, tmp_path):
        assert confined_path(tmp_path, "Projects/a.png") == tmp_path / "Projects" / "a.png"

    def test_parent_segments_rejected(self, tmp_path):
        base = tmp_path / "Templates"
        base.mkdir()

        assert confined_path(base, "../secret.pdf") is None
        assert confined_path(base, "Projects/../../secret.pdf") is None
        assert confined_path(base, "Projects/../Intro.pdf") == base / "Projects/../Intro.pdf"

    def test_absolute_name_rejected(self, tmp_path):
        base = tmp_path / "Templates"
        base.mkdir()

        assert confined_path(base, str(tmp_path / "secret.pdf")) is None

    def test_symlink_out_of_base_rejected(self, tmp_path):
        base = tmp_path / "Templates"
        base.mkdir()
        (tmp_path / "secret.pdf").write_bytes(b"%PDF")
        os.symlink(tmp_path / "secret.pdf", base / "link.pdf")

        assert confined_path(base, "link.pdf") is None
