"""Template Processor - Turns configured sections into PDFs and TOC entries."""

import logging
from pathlib import Path
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple, Union

from proposal_engine.errors import TemplateMissingError
from proposal_engine.integrations.image_processor import (
    SUPPORTED_IMAGE_EXTENSIONS,
    image_processor,
    is_supported_image,
)
from proposal_engine.integrations.pdf_forms import (
    blank_footer_bands,
    count_pages,
    fill_text_fields,
    flatten_form,
    open_pdf,
    save_pdf,
)
from proposal_engine.models import (
    FormFillTemplate,
    ImageFillTemplate,
    MemberAssociationTemplate,
    PlainTemplate,
    ProposalConfig,
    StaffProfilesTemplate,
    TemplateKind,
    TemplateSpec,
    TOCEntry,
)
from proposal_engine.models.template import MAX_MEMBER_IMAGES, image_field_name
from proposal_engine.utils.files import RunWorkspace, confined_path

logger = logging.getLogger(__name__)


class SectionOutput(NamedTuple):
    """PDFs produced for one section and their combined page count."""
    paths: List[Path]
    page_count: int


class TemplateProcessor:
    """
    Processes the ordered template list of a proposal.

    Each template is dispatched once on its ``kind``. A running page
    counter assigns every section its first content page; a section that
    fails is logged and skipped without affecting the others.
    """

    def __init__(self):
        self._handlers: Dict[TemplateKind, Callable[..., SectionOutput]] = {
            TemplateKind.PLAIN: self._process_plain,
            TemplateKind.FORM_FILL: self._process_form_fill,
            TemplateKind.IMAGE_FILL: self._process_image_fill,
            TemplateKind.MEMBER_ASSOCIATION: self._process_member_association,
            TemplateKind.STAFF_PROFILES: self._process_staff_profiles,
        }

    def process_templates(
        self,
        config: ProposalConfig,
        templates_dir: Union[str, Path],
        workspace: RunWorkspace
    ) -> Tuple[List[Path], List[TOCEntry]]:
        """
        Process every template in order.

        Args:
            config: Classified proposal configuration
            templates_dir: Directory holding the template files
            workspace: Run workspace receiving the temp PDFs

        Returns:
            Tuple of (section PDF paths in merge order, TOC entries)
        """
        templates_dir = Path(templates_dir)
        section_paths: List[Path] = []
        toc_entries: List[TOCEntry] = []
        page_counter = 1

        for template in config.templates:
            logger.info(f"Processing: {template.name}")
            try:
                output = self.process_template(template, templates_dir, workspace)
            except TemplateMissingError as e:
                logger.warning(f"Skipping {template.name}: {e}")
                continue
            except Exception as e:
                logger.error(f"Error processing template {template.name}: {e}")
                continue

            toc_entries.append(TOCEntry(title=template.name, page=page_counter))
            section_paths.extend(output.paths)
            page_counter += output.page_count

        logger.info(f"Processed {len(toc_entries)} of {len(config.templates)} sections")
        return section_paths, toc_entries

    def process_template(
        self,
        template: TemplateSpec,
        templates_dir: Path,
        workspace: RunWorkspace
    ) -> SectionOutput:
        """
        Produce the PDFs of a single section.

        Raises:
            TemplateMissingError: when the section has nothing to contribute
        """
        handler = self._handlers[template.kind]
        return handler(template, templates_dir, workspace)

    # ===========================================
    # Section Handlers
    # ===========================================

    def _require_template(self, templates_dir: Path, file_name: str) -> Path:
        template_path = confined_path(templates_dir, file_name)
        if template_path is None or not template_path.exists():
            raise TemplateMissingError(f"Template not found: {file_name}")
        return template_path

    def _process_plain(
        self,
        template: PlainTemplate,
        templates_dir: Path,
        workspace: RunWorkspace
    ) -> SectionOutput:
        template_path = self._require_template(templates_dir, template.file_name)
        return SectionOutput([template_path], count_pages(template_path))

    def _process_form_fill(
        self,
        template: FormFillTemplate,
        templates_dir: Path,
        workspace: RunWorkspace
    ) -> SectionOutput:
        template_path = self._require_template(templates_dir, template.file_name)
        output_path = workspace.temp_path(template.file_name)

        try:
            doc = open_pdf(template_path)
            try:
                fill_text_fields(doc, template.field_values)
                blank_footer_bands(doc)
                flatten_form(doc)
                save_pdf(doc, output_path)
            finally:
                doc.close()
        except Exception as e:
            logger.error(f"Error processing editable template {template.file_name}: {e}")
            return SectionOutput([template_path], count_pages(template_path))

        return SectionOutput([output_path], count_pages(output_path))

    def _process_image_fill(
        self,
        template: ImageFillTemplate,
        templates_dir: Path,
        workspace: RunWorkspace
    ) -> SectionOutput:
        template_path = self._require_template(templates_dir, template.file_name)
        images_dir = confined_path(templates_dir, template.name)

        image_mapping: Dict[str, Path] = {}
        if template.image_mapping:
            for field_name, image in template.image_mapping.items():
                image_path = self._resolve_image_path(image, images_dir, templates_dir)
                if image_path is None:
                    logger.warning(f"Image outside templates directory ignored: {image}")
                    continue
                image_mapping[field_name] = image_path
        elif images_dir is not None:
            image_mapping = image_processor.auto_map_images(images_dir)

        # Fields receiving an image are not filled with text
        field_values = {
            name: value for name, value in template.field_values.items()
            if name not in image_mapping
        }

        output_path = workspace.temp_path(template.file_name)
        image_processor.process_template_with_images(
            template_path,
            image_mapping,
            output_path,
            field_values=field_values,
        )
        return SectionOutput([output_path], count_pages(output_path))

    def _process_member_association(
        self,
        template: MemberAssociationTemplate,
        templates_dir: Path,
        workspace: RunWorkspace
    ) -> SectionOutput:
        template_path = self._require_template(templates_dir, template.file_name)
        images_dir = confined_path(templates_dir, template.name)

        image_mapping: Dict[str, Path] = {}
        members = template.members if images_dir is not None else []
        for member in members:
            if len(image_mapping) >= MAX_MEMBER_IMAGES:
                logger.warning(
                    f"Only {MAX_MEMBER_IMAGES} member logos fit, ignoring the rest"
                )
                break
            image = self.resolve_member_image(images_dir, member)
            if image is None:
                logger.warning(f"Member image not found: {member}")
                continue
            image_mapping[image_field_name(len(image_mapping) + 1)] = image

        if not image_mapping:
            logger.warning(f"No member images resolved, using {template.file_name} as is")
            return SectionOutput([template_path], count_pages(template_path))

        output_path = workspace.temp_path(template.file_name)
        image_processor.process_template_with_images(template_path, image_mapping, output_path)
        return SectionOutput([output_path], count_pages(output_path))

    def _process_staff_profiles(
        self,
        template: StaffProfilesTemplate,
        templates_dir: Path,
        workspace: RunWorkspace
    ) -> SectionOutput:
        paths: List[Path] = []
        total_pages = 0

        intro_path = confined_path(templates_dir, template.file_name)
        if intro_path is not None and intro_path.exists():
            paths.append(intro_path)
            total_pages += count_pages(intro_path)
        else:
            logger.warning(f"Staff profiles intro not found: {template.file_name}")

        for staff in template.staffs:
            staff_path = confined_path(templates_dir, staff.file_name)
            if staff_path is None or not staff_path.exists():
                logger.warning(f"Staff profile not found: {staff.file_name}")
                continue
            paths.append(staff_path)
            total_pages += count_pages(staff_path)
            logger.info(f"Added: {staff.name}")

        if not paths:
            raise TemplateMissingError("No staff profile files found")

        return SectionOutput(paths, total_pages)

    # ===========================================
    # Image Resolution
    # ===========================================

    @staticmethod
    def resolve_member_image(images_dir: Path, member: str):
        """Find ``<member>.jpg|.jpeg|.png`` in ``images_dir``; None if absent."""
        if is_supported_image(member):
            names = [member]
        else:
            names = [f"{member}{extension}" for extension in SUPPORTED_IMAGE_EXTENSIONS]

        for name in names:
            candidate = confined_path(images_dir, name)
            if candidate is not None and candidate.exists():
                return candidate
        return None

    @staticmethod
    def _resolve_image_path(
        image: str,
        images_dir: Optional[Path],
        templates_dir: Path
    ) -> Optional[Path]:
        """Locate a mapped image under the section or templates directory; None if it escapes."""
        candidates = [
            confined_path(base, image)
            for base in (images_dir, templates_dir)
            if base is not None
        ]
        candidates = [candidate for candidate in candidates if candidate is not None]
        if not candidates:
            return None
        for candidate in candidates:
            if candidate.exists():
                return candidate
        # Missing images are reported when the image is queued
        return candidates[0]


# Singleton instance
template_processor = TemplateProcessor()
