"""Image placement into PDF form fields.

Images are placed in two phases. The queue phase resolves every field and
image into a :class:`PendingImage`; the form is then flattened and the draw
phase paints the queued images on top, so flattening cannot wipe them out.
"""

import logging
from pathlib import Path
from typing import Dict, List, Mapping, NamedTuple, Optional, Union

import fitz  # PyMuPDF

from proposal_engine.errors import (
    FieldNotFoundError,
    ImageNotFoundError,
    UnsupportedImageFormatError,
)
from proposal_engine.integrations.pdf_forms import (
    fill_text_fields,
    find_field,
    flatten_form,
    open_pdf,
    save_pdf,
    set_text_field,
)
from proposal_engine.models.template import (
    IMAGE_FIELD_PREFIX,
    IMAGE_FIELD_SUFFIX,
    MAX_MEMBER_IMAGES,
)

logger = logging.getLogger(__name__)

SUPPORTED_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png")


class PendingImage(NamedTuple):
    """An image waiting to be drawn once the form is flattened."""
    field_name: str
    page_index: int
    rect: fitz.Rect
    image_bytes: bytes


def is_supported_image(path: Union[str, Path]) -> bool:
    return Path(path).suffix.lower() in SUPPORTED_IMAGE_EXTENSIONS


def fit_image_rect(image_width: float, image_height: float, rect: fitz.Rect) -> fitz.Rect:
    """
    Largest rect with the image's aspect ratio that fits ``rect``, centered.

    Fits to width when the image is relatively wider than the target,
    otherwise fits to height.
    """
    target = fitz.Rect(rect)
    if image_width <= 0 or image_height <= 0 or target.is_empty:
        return target

    image_ratio = image_width / image_height
    target_ratio = target.width / target.height

    if image_ratio > target_ratio:
        width = target.width
        height = width / image_ratio
    else:
        height = target.height
        width = height * image_ratio

    x0 = target.x0 + (target.width - width) / 2
    y0 = target.y0 + (target.height - height) / 2
    return fitz.Rect(x0, y0, x0 + width, y0 + height)


class ImageProcessor:
    """Fills image placeholder fields of PDF templates."""

    # ===========================================
    # Queue Phase
    # ===========================================

    def queue_image(
        self,
        doc: fitz.Document,
        field_name: str,
        image_path: Union[str, Path]
    ) -> PendingImage:
        """
        Resolve one field/image pair into a pending draw.

        Raises:
            FieldNotFoundError: no widget carries ``field_name``
            ImageNotFoundError: the image file does not exist
            UnsupportedImageFormatError: the image is not JPEG or PNG
        """
        location = find_field(doc, field_name)

        image_path = Path(image_path)
        if not image_path.exists():
            raise ImageNotFoundError(f"Image not found: {image_path}")
        if not is_supported_image(image_path):
            raise UnsupportedImageFormatError(
                f"Unsupported image format: {image_path.suffix or image_path.name}"
            )

        image_bytes = image_path.read_bytes()
        try:
            pixmap = fitz.Pixmap(str(image_path))
        except Exception as e:
            raise UnsupportedImageFormatError(f"Could not decode image {image_path.name}: {e}") from e
        rect = fit_image_rect(pixmap.width, pixmap.height, location.rect)

        if location.is_text:
            # Placeholder text would otherwise be baked under the image
            set_text_field(doc, field_name, "")

        logger.info(f"Queued {image_path.name} for field {field_name} on page {location.page_index + 1}")
        return PendingImage(
            field_name=field_name,
            page_index=location.page_index,
            rect=rect,
            image_bytes=image_bytes,
        )

    def queue_images(
        self,
        doc: fitz.Document,
        image_mapping: Mapping[str, Union[str, Path]]
    ) -> List[PendingImage]:
        """Queue every mapping entry, skipping the ones that cannot be placed."""
        pending: List[PendingImage] = []
        for field_name, image_path in image_mapping.items():
            try:
                pending.append(self.queue_image(doc, field_name, image_path))
            except (FieldNotFoundError, ImageNotFoundError, UnsupportedImageFormatError) as e:
                logger.warning(f"Skipping image for {field_name}: {e}")
        return pending

    # ===========================================
    # Draw Phase
    # ===========================================

    def draw_pending_images(self, doc: fitz.Document, pending: List[PendingImage]) -> int:
        """Draw queued images; returns how many were drawn."""
        drawn = 0
        for item in pending:
            page = doc[item.page_index]
            page.insert_image(item.rect, stream=item.image_bytes, keep_proportion=False, overlay=True)
            drawn += 1
        return drawn

    # ===========================================
    # Template Processing
    # ===========================================

    def process_template_with_images(
        self,
        template_path: Union[str, Path],
        image_mapping: Mapping[str, Union[str, Path]],
        output_path: Union[str, Path],
        field_values: Optional[Mapping[str, str]] = None
    ) -> Path:
        """
        Fill a template's image placeholders and save the result.

        Args:
            template_path: Source template
            image_mapping: Field name -> image path
            output_path: Where to write the processed PDF
            field_values: Optional text fields filled before the images

        Returns:
            Path of the written PDF
        """
        template_path = Path(template_path)
        doc = open_pdf(template_path)
        try:
            if field_values:
                fill_text_fields(doc, dict(field_values))

            pending = self.queue_images(doc, image_mapping)
            flatten_form(doc)
            drawn = self.draw_pending_images(doc, pending)
            output = save_pdf(doc, output_path)
        finally:
            doc.close()

        logger.info(f"Placed {drawn}/{len(image_mapping)} images into {template_path.name}")
        return output

    def auto_map_images(
        self,
        images_dir: Union[str, Path],
        prefix: str = IMAGE_FIELD_PREFIX,
        max_count: int = MAX_MEMBER_IMAGES,
        suffix: str = IMAGE_FIELD_SUFFIX
    ) -> Dict[str, Path]:
        """
        Map the images of a directory to sequential field names.

        Files are sorted by name; the first ``max_count`` become
        ``{prefix}1{suffix}``, ``{prefix}2{suffix}`` and so on.
        """
        images_dir = Path(images_dir)
        if not images_dir.is_dir():
            logger.warning(f"Images directory not found: {images_dir}")
            return {}

        images = sorted(
            (path for path in images_dir.iterdir() if path.is_file() and is_supported_image(path)),
            key=lambda path: path.name,
        )

        mapping: Dict[str, Path] = {}
        for position, image in enumerate(images[:max_count], start=1):
            mapping[f"{prefix}{position}{suffix}"] = image

        logger.info(f"Auto-mapped {len(mapping)} images from {images_dir}")
        return mapping


# Singleton instance
image_processor = ImageProcessor()
