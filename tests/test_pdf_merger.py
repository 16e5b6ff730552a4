"""Tests for final assembly, page numbering and temp cleanup."""

from unittest.mock import patch

import fitz  # PyMuPDF
import pytest

from proposal_engine.errors import OutputWriteError
from proposal_engine.integrations.pdf_merger import page_label, pdf_merger
from proposal_engine.utils.files import RunWorkspace


class TestPageLabel:
    """Tests for footer label arithmetic."""

    def test_leading_pages_unnumbered(self):
        assert page_label(0, 5, 2) is None
        assert page_label(1, 5, 2) is None

    def test_content_pages_numbered(self):
        assert page_label(2, 5, 2) == "Page 1 of 3"
        assert page_label(4, 5, 2) == "Page 3 of 3"

    def test_custom_unnumbered_count(self):
        assert page_label(3, 6, 3) == "Page 1 of 3"


class TestMergeFinalProposal:
    """Tests for merging section PDFs."""

    def test_pages_merged_in_order(self, tmp_path, pdf_factory, page_texts):
        paths = [
            pdf_factory(tmp_path / "front.pdf", body="Front"),
            pdf_factory(tmp_path / "toc.pdf", body="Contents"),
            pdf_factory(tmp_path / "a.pdf", pages=2, body="Alpha"),
            pdf_factory(tmp_path / "b.pdf", body="Beta"),
        ]
        output = tmp_path / "out" / "proposal.pdf"

        result = pdf_merger.merge_final_proposal(paths, output)

        assert result == output
        texts = page_texts(output)
        assert len(texts) == 5
        assert "Front 1" in texts[0]
        assert "Alpha 1" in texts[2]
        assert "Alpha 2" in texts[3]
        assert "Beta 1" in texts[4]

    def test_numbering_skips_front_and_toc(self, tmp_path, pdf_factory, page_texts):
        paths = [
            pdf_factory(tmp_path / "front.pdf"),
            pdf_factory(tmp_path / "toc.pdf"),
            pdf_factory(tmp_path / "a.pdf", pages=2),
        ]
        output = tmp_path / "proposal.pdf"

        pdf_merger.merge_final_proposal(paths, output)

        texts = page_texts(output)
        assert "Page " not in texts[0]
        assert "Page " not in texts[1]
        assert "Page 1 of 2" in texts[2]
        assert "Page 2 of 2" in texts[3]

    def test_unreadable_input_is_left_out(self, tmp_path, pdf_factory, page_texts):
        broken = tmp_path / "broken.pdf"
        broken.write_bytes(b"not a pdf")
        paths = [
            pdf_factory(tmp_path / "front.pdf"),
            tmp_path / "missing.pdf",
            broken,
            pdf_factory(tmp_path / "a.pdf", body="Alpha"),
        ]
        output = tmp_path / "proposal.pdf"

        pdf_merger.merge_final_proposal(paths, output, unnumbered_pages=1)

        texts = page_texts(output)
        assert len(texts) == 2
        assert "Alpha 1" in texts[1]
        assert "Page 1 of 1" in texts[1]

    def test_failed_save_keeps_existing_output(self, tmp_path, pdf_factory):
        output = tmp_path / "proposal.pdf"
        output.write_bytes(b"previous version")
        staging = tmp_path / "staging"
        section = pdf_factory(tmp_path / "a.pdf")

        with patch.object(fitz.Document, "save", side_effect=RuntimeError("disk full")):
            with pytest.raises(OutputWriteError):
                pdf_merger.merge_final_proposal([section], output, staging_dir=staging)

        assert output.read_bytes() == b"previous version"
        assert list(staging.iterdir()) == []


class TestCleanupTempFiles:
    """Tests for deleting run artifacts."""

    def test_only_workspace_artifacts_deleted(self, tmp_path, pdf_factory):
        workspace = RunWorkspace(tmp_path / "Output")
        temp_file = pdf_factory(workspace.temp_path("Cover.pdf"))
        template = pdf_factory(tmp_path / "Templates" / "Cover.pdf")
        lookalike = pdf_factory(tmp_path / "temp_Cover.pdf")

        removed = pdf_merger.cleanup_temp_files([temp_file, template, lookalike], workspace)

        assert removed == 1
        assert not temp_file.exists()
        assert template.exists()
        assert lookalike.exists()
        workspace.close()

    def test_missing_artifact_ignored(self, tmp_path):
        with RunWorkspace(tmp_path) as workspace:
            assert pdf_merger.cleanup_temp_files([workspace.temp_path("gone.pdf")], workspace) == 0
