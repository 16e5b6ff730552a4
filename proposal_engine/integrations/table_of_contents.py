"""Table of contents page rendering."""

import logging
import math
from pathlib import Path
from typing import List, NamedTuple, Optional, Sequence, Union

from reportlab.lib.colors import Color
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from proposal_engine.models import TOCEntry

logger = logging.getLogger(__name__)

PAGE_SIZE = (595.28, 841.89)  # A4

HEADER_LINES = ("TABLE OF", "CONTENTS")
HEADER_FONT = "Helvetica-Bold"
HEADER_SIZE = 42
HEADER_LEADING = 45
HEADER_COLOR = Color(0.42, 0.73, 0.31)

ENTRY_FONT = "Helvetica"
ENTRY_SIZE = 11
ROW_HEIGHT = 16
COLUMN_FLOOR = 100
MARGIN_X = 50
DOT_WIDTH = 4
MIN_TITLE_CHARS = 10
ELLIPSIS = "..."


class TOCLine(NamedTuple):
    """A placed entry: baseline position plus the strings to draw."""
    x: float
    y: float
    title: str
    dots: str
    dots_x: float
    page_label: str
    page_x: float


def _text_width(text: str) -> float:
    return stringWidth(text, ENTRY_FONT, ENTRY_SIZE)


def truncate_title(title: str, column_width: float) -> str:
    """Shorten ``title`` with an ellipsis when it is too wide for the column."""
    if _text_width(title) <= column_width - 50:
        return title

    truncated = title
    width = _text_width(truncated)
    while width > column_width - 70 and len(truncated) > MIN_TITLE_CHARS:
        truncated = truncated[:-1]
        width = _text_width(truncated + ELLIPSIS)
    return truncated + ELLIPSIS


def layout_entries(
    entries: Sequence[TOCEntry],
    page_size=PAGE_SIZE
) -> List[TOCLine]:
    """
    Place entries in two interleaved columns.

    Entries alternate left/right in list order. A left column that has
    reached the floor hands its entries to the right column; once the right
    column is full too, the remaining entries are dropped.
    """
    width, height = page_size
    start_y = height - 200
    column_width = width / 2 - 70
    columns_x = (MARGIN_X, width / 2 + 20)
    cursors = [start_y, start_y]

    lines: List[TOCLine] = []
    use_left = True

    for index, entry in enumerate(entries):
        column = 0 if use_left else 1
        if cursors[column] < COLUMN_FLOOR:
            if column == 0 and cursors[1] >= COLUMN_FLOOR:
                column = 1
            else:
                dropped = len(entries) - index
                logger.warning(f"Table of contents is full, {dropped} entries not shown")
                break

        x = columns_x[column]
        y = cursors[column]

        title = truncate_title(entry.title, column_width)
        page_label = str(entry.page)
        page_x = x + column_width - _text_width(page_label)

        dots_x = x + _text_width(title) + 5
        space = (page_x - 5) - dots_x
        dots = "." * max(0, math.floor(space / DOT_WIDTH)) if space > 10 else ""

        lines.append(TOCLine(x, y, title, dots, dots_x, page_label, page_x))

        cursors[column] -= ROW_HEIGHT
        use_left = column == 1

    return lines


class TableOfContentsRenderer:
    """Draws the single-page table of contents."""

    def render(
        self,
        entries: Sequence[TOCEntry],
        output_path: Union[str, Path],
        page_size: Optional[tuple] = None
    ) -> Path:
        """
        Write the table of contents to ``output_path``.

        The page carries no page number of its own.
        """
        page_size = page_size or PAGE_SIZE
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        height = page_size[1]
        c = canvas.Canvas(str(output_path), pagesize=page_size)

        c.setFillColor(HEADER_COLOR)
        c.setFont(HEADER_FONT, HEADER_SIZE)
        header_y = height - 100
        for offset, text in enumerate(HEADER_LINES):
            c.drawString(MARGIN_X, header_y - offset * HEADER_LEADING, text)

        lines = layout_entries(entries, page_size)
        c.setFont(ENTRY_FONT, ENTRY_SIZE)
        for line in lines:
            c.setFillColor(Color(0, 0, 0))
            c.drawString(line.x, line.y, line.title)
            if line.dots:
                c.setFillColor(Color(0.5, 0.5, 0.5))
                c.drawString(line.dots_x, line.y, line.dots)
            c.setFillColor(Color(0, 0, 0))
            c.drawString(line.page_x, line.y, line.page_label)

        c.showPage()
        c.save()

        logger.info(f"Table of contents generated with {len(lines)} entries: {output_path.name}")
        return output_path


# Singleton instance
toc_renderer = TableOfContentsRenderer()
