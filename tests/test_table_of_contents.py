"""Tests for table of contents layout and rendering."""

import pytest
from reportlab.pdfbase.pdfmetrics import stringWidth

from proposal_engine.integrations.table_of_contents import (
    ENTRY_FONT,
    ENTRY_SIZE,
    MARGIN_X,
    PAGE_SIZE,
    layout_entries,
    toc_renderer,
    truncate_title,
)
from proposal_engine.models import TOCEntry

COLUMN_WIDTH = PAGE_SIZE[0] / 2 - 70
RIGHT_X = PAGE_SIZE[0] / 2 + 20


def make_entries(count):
    return [TOCEntry(title=f"Section {index}", page=index + 1) for index in range(count)]


class TestLayoutEntries:
    """Tests for two-column placement."""

    def test_entries_alternate_columns(self):
        lines = layout_entries(make_entries(4))

        assert [line.x for line in lines] == [MARGIN_X, RIGHT_X, MARGIN_X, RIGHT_X]
        assert lines[0].y == pytest.approx(PAGE_SIZE[1] - 200)
        assert lines[1].y == pytest.approx(PAGE_SIZE[1] - 200)
        assert lines[2].y == pytest.approx(PAGE_SIZE[1] - 216)

    def test_page_number_right_aligned(self):
        line = layout_entries([TOCEntry(title="Intro", page=12)])[0]

        assert line.page_label == "12"
        right_edge = line.page_x + stringWidth("12", ENTRY_FONT, ENTRY_SIZE)
        assert right_edge == pytest.approx(MARGIN_X + COLUMN_WIDTH)
        assert set(line.dots) == {"."}

    def test_full_page_drops_remaining_entries(self, caplog):
        lines = layout_entries(make_entries(80))

        # 34 rows fit above the floor in each column
        assert len(lines) == 68
        assert all(line.y >= 100 for line in lines)
        assert "12 entries not shown" in caplog.text

    def test_empty(self):
        assert layout_entries([]) == []


class TestTruncateTitle:
    """Tests for fitting titles into a column."""

    def test_short_title_unchanged(self):
        assert truncate_title("Intro", COLUMN_WIDTH) == "Intro"

    def test_long_title_gets_ellipsis(self):
        title = "Comprehensive Environmental and Social Impact Assessment Overview"

        result = truncate_title(title, COLUMN_WIDTH)

        assert result.endswith("...")
        assert len(result) < len(title)
        assert stringWidth(result, ENTRY_FONT, ENTRY_SIZE) <= COLUMN_WIDTH - 70

    def test_never_shorter_than_minimum(self):
        result = truncate_title("W" * 60, 80)

        assert result == "W" * 10 + "..."


class TestRender:
    """Tests for the rendered page."""

    def test_single_page_without_page_number(self, tmp_path, page_texts):
        output = toc_renderer.render(
            [TOCEntry(title="Intro", page=1), TOCEntry(title="Staff Profiles", page=2)],
            tmp_path / "toc.pdf",
        )

        texts = page_texts(output)
        assert len(texts) == 1
        assert "TABLE OF" in texts[0]
        assert "CONTENTS" in texts[0]
        assert "Staff Profiles" in texts[0]
        assert "Page " not in texts[0]

    def test_empty_toc_still_renders_header(self, tmp_path, page_texts):
        output = toc_renderer.render([], tmp_path / "nested" / "toc.pdf")

        texts = page_texts(output)
        assert len(texts) == 1
        assert "CONTENTS" in texts[0]
