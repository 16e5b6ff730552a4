"""Tests for front page generation."""

from datetime import datetime

import fitz  # PyMuPDF

from proposal_engine.core.config import get_settings
from proposal_engine.integrations.front_page import front_page_builder
from proposal_engine.models import ProposalConfig


def make_config(company="Acme"):
    return ProposalConfig.from_raw({
        "Company": company,
        "Templates": [{"name": "Intro", "fileName": "Intro.pdf", "editable": False}],
    })


class TestGenerateFrontPage:
    """Tests for the cover template and its fallback."""

    def test_fills_cover_template(self, templates_dir, tmp_path, pdf_factory):
        pdf_factory(
            templates_dir / get_settings().FRONT_PAGE_TEMPLATE,
            text_fields=[
                ("CompanyName", 0, (50, 200, 400, 240)),
                ("date", 0, (50, 260, 200, 290)),
            ],
            body="Cover",
        )
        output = tmp_path / "work" / "temp_frontpage.pdf"

        result = front_page_builder.generate_front_page(make_config(), templates_dir, output)

        assert result == output
        with fitz.open(str(output)) as doc:
            assert doc.page_count == 1
            page = doc[0]
            assert list(page.widgets()) == []
            text = page.get_text()
        assert "Acme" in text
        assert str(datetime.now().year) in text

    def test_missing_fields_are_tolerated(self, templates_dir, tmp_path, pdf_factory, page_texts):
        pdf_factory(templates_dir / get_settings().FRONT_PAGE_TEMPLATE, body="Cover")
        output = tmp_path / "frontpage.pdf"

        front_page_builder.generate_front_page(make_config(), templates_dir, output)

        assert "Cover 1" in page_texts(output)[0]

    def test_missing_template_falls_back(self, templates_dir, tmp_path, page_texts):
        output = tmp_path / "frontpage.pdf"

        front_page_builder.generate_front_page(make_config("Globex"), templates_dir, output)

        texts = page_texts(output)
        assert len(texts) == 1
        assert "Globex" in texts[0]
        assert get_settings().PROPOSAL_SUBTITLE in texts[0]

    def test_unreadable_template_falls_back(self, templates_dir, tmp_path, page_texts):
        (templates_dir / get_settings().FRONT_PAGE_TEMPLATE).write_bytes(b"garbage")
        output = tmp_path / "frontpage.pdf"

        front_page_builder.generate_front_page(make_config(), templates_dir, output)

        assert "Acme" in page_texts(output)[0]
