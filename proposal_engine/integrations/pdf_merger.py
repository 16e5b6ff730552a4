"""Final proposal assembly: page concatenation, numbering and temp cleanup."""

import logging
import os
from pathlib import Path
from typing import Iterable, Optional, Sequence, Union

import fitz  # PyMuPDF

from proposal_engine.errors import MergeReadError, OutputWriteError
from proposal_engine.integrations.pdf_forms import blank_footer_band, open_pdf
from proposal_engine.utils.files import RunWorkspace

logger = logging.getLogger(__name__)

PAGE_NUMBER_FONT = "helv"  # Helvetica
PAGE_NUMBER_SIZE = 10
PAGE_NUMBER_BOTTOM_OFFSET = 15
DEFAULT_UNNUMBERED_PAGES = 2


def page_label(index: int, total_pages: int, unnumbered_pages: int) -> Optional[str]:
    """Footer label for the page at ``index``; None for unnumbered pages."""
    if index < unnumbered_pages:
        return None
    content_pages = total_pages - unnumbered_pages
    return f"Page {index - unnumbered_pages + 1} of {content_pages}"


class PDFMerger:
    """Concatenates section PDFs into the final proposal."""

    def merge_final_proposal(
        self,
        pdf_paths: Sequence[Union[str, Path]],
        output_path: Union[str, Path],
        unnumbered_pages: int = DEFAULT_UNNUMBERED_PAGES,
        staging_dir: Optional[Union[str, Path]] = None
    ) -> Path:
        """
        Merge ``pdf_paths`` in order and write the numbered result.

        Inputs that cannot be read are logged and left out. The result is
        written to a staging file first and moved into place, so a failed
        save never leaves a partial file at ``output_path``.

        Raises:
            OutputWriteError: the merged document could not be written
        """
        output_path = Path(output_path)
        merged = fitz.open()
        try:
            for pdf_path in pdf_paths:
                try:
                    appended = self._append_pdf(merged, pdf_path)
                    logger.info(f"Merged: {Path(pdf_path).name} ({appended} pages)")
                except MergeReadError as e:
                    logger.error(f"Error merging {Path(pdf_path).name}: {e}")

            total_pages = merged.page_count
            self.add_page_numbers(merged, unnumbered_pages)
            self._save_atomically(merged, output_path, staging_dir)
        finally:
            merged.close()

        logger.info(f"Final proposal merged: {total_pages} pages")
        return output_path

    def _append_pdf(self, merged: fitz.Document, pdf_path: Union[str, Path]) -> int:
        path = Path(pdf_path)
        if not path.exists():
            raise MergeReadError(f"File not found: {path}")

        try:
            source = open_pdf(path)
        except Exception as e:
            raise MergeReadError(f"Could not read {path.name}: {e}") from e

        try:
            start = merged.page_count
            merged.insert_pdf(source)
        except Exception as e:
            raise MergeReadError(f"Could not copy pages of {path.name}: {e}") from e
        finally:
            source.close()

        for index in range(start, merged.page_count):
            blank_footer_band(merged[index])
        return merged.page_count - start

    def add_page_numbers(
        self,
        doc: fitz.Document,
        unnumbered_pages: int = DEFAULT_UNNUMBERED_PAGES
    ) -> int:
        """
        Draw "Page N of M" on every page after the first ``unnumbered_pages``.

        Returns:
            Number of pages that received a label
        """
        total_pages = doc.page_count
        numbered = 0
        for index in range(total_pages):
            label = page_label(index, total_pages, unnumbered_pages)
            if label is None:
                continue

            page = doc[index]
            text_width = fitz.get_text_length(
                label, fontname=PAGE_NUMBER_FONT, fontsize=PAGE_NUMBER_SIZE
            )
            x = (page.rect.width - text_width) / 2
            y = page.rect.height - PAGE_NUMBER_BOTTOM_OFFSET
            page.insert_text(
                (x, y),
                label,
                fontname=PAGE_NUMBER_FONT,
                fontsize=PAGE_NUMBER_SIZE,
                color=(0, 0, 0),
            )
            numbered += 1

        logger.info(f"Added page numbers to {numbered} content pages")
        return numbered

    def _save_atomically(
        self,
        doc: fitz.Document,
        output_path: Path,
        staging_dir: Optional[Union[str, Path]]
    ) -> None:
        staging_base = Path(staging_dir) if staging_dir else output_path.parent
        staging_path = staging_base / f".{output_path.name}.partial"
        try:
            staging_base.mkdir(parents=True, exist_ok=True)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            doc.save(str(staging_path), garbage=3, deflate=True)
            os.replace(staging_path, output_path)
        except Exception as e:
            staging_path.unlink(missing_ok=True)
            logger.error(f"Failed to write {output_path}: {e}")
            raise OutputWriteError(f"Could not write final proposal {output_path.name}: {e}") from e

    def cleanup_temp_files(
        self,
        paths: Iterable[Union[str, Path]],
        workspace: RunWorkspace
    ) -> int:
        """
        Delete the run's temp artifacts among ``paths``.

        Anything not handed out by ``workspace`` (source templates
        included) is left alone.

        Returns:
            Number of files deleted
        """
        removed = 0
        for path in paths:
            path = Path(path)
            if not workspace.is_temp_artifact(path):
                continue
            try:
                if path.exists():
                    path.unlink()
                    removed += 1
                    logger.debug(f"Cleaned up: {path.name}")
            except OSError as e:
                logger.warning(f"Could not delete temp file {path}: {e}")
        return removed


# Singleton instance
pdf_merger = PDFMerger()
