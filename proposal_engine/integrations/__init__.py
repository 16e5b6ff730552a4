"""Integrations module - PDF building blocks."""

from proposal_engine.integrations.front_page import FrontPageBuilder, front_page_builder
from proposal_engine.integrations.image_processor import (
    ImageProcessor,
    PendingImage,
    fit_image_rect,
    image_processor,
)
from proposal_engine.integrations.table_of_contents import (
    TableOfContentsRenderer,
    layout_entries,
    toc_renderer,
)
from proposal_engine.integrations.pdf_merger import PDFMerger, pdf_merger

__all__ = [
    "FrontPageBuilder",
    "front_page_builder",
    "ImageProcessor",
    "PendingImage",
    "fit_image_rect",
    "image_processor",
    "TableOfContentsRenderer",
    "layout_entries",
    "toc_renderer",
    "PDFMerger",
    "pdf_merger",
]
