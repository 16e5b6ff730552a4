"""Shared PyMuPDF helpers for form filling, flattening and page cleanup."""

import logging
from pathlib import Path
from typing import Dict, List, NamedTuple, Union

import fitz  # PyMuPDF

from proposal_engine.errors import FieldNotFoundError

logger = logging.getLogger(__name__)

# Height of the bottom strip painted white to hide page numbers baked into templates
FOOTER_BAND_HEIGHT = 30
WHITE = (1, 1, 1)

TEXT_WIDGET_TYPES = (fitz.PDF_WIDGET_TYPE_TEXT,)
BUTTON_WIDGET_TYPES = (
    fitz.PDF_WIDGET_TYPE_BUTTON,
    fitz.PDF_WIDGET_TYPE_CHECKBOX,
    fitz.PDF_WIDGET_TYPE_RADIOBUTTON,
)


class FieldLocation(NamedTuple):
    """Where the first widget of a form field sits."""
    field_name: str
    field_type: int
    page_index: int
    rect: fitz.Rect

    @property
    def is_text(self) -> bool:
        return self.field_type in TEXT_WIDGET_TYPES


def open_pdf(path: Union[str, Path]) -> fitz.Document:
    """Open a PDF file, rejecting non-PDF documents."""
    doc = fitz.open(str(path))
    if not doc.is_pdf:
        doc.close()
        raise ValueError(f"Not a PDF document: {path}")
    return doc


def count_pages(pdf_path: Union[str, Path]) -> int:
    """Page count of a PDF; unreadable files count as one page."""
    try:
        with fitz.open(str(pdf_path)) as doc:
            return doc.page_count
    except Exception as e:
        logger.warning(f"Could not get page count for {pdf_path}: {e}")
        return 1


def blank_footer_band(page: fitz.Page) -> None:
    """Paint an opaque white band over the bottom of ``page``."""
    rect = page.rect
    band = fitz.Rect(rect.x0, rect.y1 - FOOTER_BAND_HEIGHT, rect.x1, rect.y1)
    page.draw_rect(band, color=None, fill=WHITE, overlay=True)


def blank_footer_bands(doc: fitz.Document) -> None:
    for page in doc:
        blank_footer_band(page)


def _iter_widgets(doc: fitz.Document, field_name: str, widget_types=None):
    for page in doc:
        for widget in page.widgets():
            if widget.field_name != field_name:
                continue
            if widget_types is None or widget.field_type in widget_types:
                yield page, widget


def find_field(doc: fitz.Document, field_name: str) -> FieldLocation:
    """
    Locate the first widget of ``field_name``.

    The field kind is not known up front, so text widgets are tried first,
    then button widgets, then any widget carrying the name.

    Raises:
        FieldNotFoundError: when no widget carries the name
    """
    for widget_types in (TEXT_WIDGET_TYPES, BUTTON_WIDGET_TYPES, None):
        for page, widget in _iter_widgets(doc, field_name, widget_types):
            return FieldLocation(
                field_name=field_name,
                field_type=widget.field_type,
                page_index=page.number,
                rect=fitz.Rect(widget.rect),
            )
    raise FieldNotFoundError(f'Field "{field_name}" not found in PDF form')


def set_text_field(doc: fitz.Document, field_name: str, value: str) -> None:
    """
    Set every text widget named ``field_name`` to ``value``.

    Raises:
        FieldNotFoundError: when the form has no such text field
    """
    found = False
    for _, widget in _iter_widgets(doc, field_name, TEXT_WIDGET_TYPES):
        widget.field_value = value
        widget.update()
        found = True
    if not found:
        raise FieldNotFoundError(f'Text field "{field_name}" not found in PDF form')


def fill_text_fields(doc: fitz.Document, field_values: Dict[str, str]) -> List[str]:
    """
    Fill text fields best-effort.

    Returns:
        Names of the fields that could not be found
    """
    missing: List[str] = []
    for field_name, value in field_values.items():
        try:
            set_text_field(doc, field_name, "" if value is None else str(value))
            logger.info(f"Filled field: {field_name} = {value}")
        except FieldNotFoundError:
            logger.warning(f"Field not found: {field_name}")
            missing.append(field_name)
    return missing


def flatten_form(doc: fitz.Document) -> None:
    """Turn form widgets into static page content."""
    doc.bake(annots=False, widgets=True)


def save_pdf(doc: fitz.Document, output_path: Union[str, Path]) -> Path:
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    doc.save(str(path), garbage=3, deflate=True)
    return path

