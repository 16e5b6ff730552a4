"""Proposal Generator Service - Orchestrates the full proposal pipeline."""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

from proposal_engine.core.config import get_settings
from proposal_engine.core.database import db_service
from proposal_engine.errors import (
    ConfigValidationError,
    PersistenceError,
    ProposalNotFoundError,
)
from proposal_engine.integrations.front_page import front_page_builder
from proposal_engine.integrations.pdf_forms import count_pages
from proposal_engine.integrations.pdf_merger import pdf_merger
from proposal_engine.integrations.table_of_contents import toc_renderer
from proposal_engine.models import (
    DatabaseInfo,
    GenerationResult,
    ProposalConfig,
    ProposalRecord,
    ProposalVersionCreated,
    RefineResult,
    TemplateValidationResult,
    VersionStatus,
)
from proposal_engine.services.template_processor import template_processor
from proposal_engine.utils.files import (
    RunWorkspace,
    ensure_directory_exists,
    find_missing_templates,
    format_file_size,
    get_file_size,
    load_config_file,
)
from proposal_engine.utils.validation import (
    normalize_config,
    sanitize_filename,
    validate_output_filename,
    validate_proposal_config,
)

logger = logging.getLogger(__name__)

FRONT_PAGE_TEMP_NAME = "frontpage.pdf"
TOC_TEMP_NAME = "toc.pdf"
EXPECTED_LEADING_PAGES = 2


class ProposalGenerator:
    """
    Main orchestration service for proposal generation.

    Steps of a run:
    1. Validate the configuration
    2. Create the database record that fixes the version number
    3. Build front page, sections and table of contents
    4. Merge everything into the numbered final document
    5. Record the file name and clean up the run workspace

    PDF work is blocking and runs in worker threads via asyncio.to_thread(),
    strictly one step after the other.
    """

    def __init__(
        self,
        templates_dir: Optional[Union[str, Path]] = None,
        output_dir: Optional[Union[str, Path]] = None
    ):
        """Initialize generator; directories default to the settings."""
        self._settings = None
        self._templates_dir = Path(templates_dir) if templates_dir else None
        self._output_dir = Path(output_dir) if output_dir else None

    @property
    def settings(self):
        """Lazy load settings."""
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def templates_dir(self) -> Path:
        return self._templates_dir or self.settings.templates_path

    @property
    def output_dir(self) -> Path:
        return self._output_dir or self.settings.output_path

    # ===========================================
    # Configuration
    # ===========================================

    def prepare_config(self, config: Any) -> ProposalConfig:
        """
        Unwrap, validate and classify a raw configuration.

        Raises:
            ConfigValidationError: listing every structural problem
        """
        if isinstance(config, ProposalConfig):
            return config

        normalized = normalize_config(config)
        errors = validate_proposal_config(normalized)
        if errors:
            logger.warning(f"Invalid configuration: {errors}")
            raise ConfigValidationError(errors)
        return ProposalConfig.from_raw(normalized)

    def download_url(self, file_name: str) -> str:
        base_url = self.settings.BASE_URL.rstrip("/")
        return f"{base_url}/api/proposals/download/{quote(file_name)}"

    # ===========================================
    # Generation
    # ===========================================

    async def generate(
        self,
        config: Any,
        output_file_name: Optional[str] = None,
        created_by: Optional[str] = None
    ) -> GenerationResult:
        """
        Generate a complete proposal.

        Args:
            config: Proposal configuration, bare or in a wrapper shape
            output_file_name: File name (sanitized) to use instead of creating
                a new versioned record
            created_by: User recorded on the new record

        Returns:
            GenerationResult describing the written file

        Raises:
            ConfigValidationError: invalid config or output file name
            PersistenceError: a database call failed
            OutputWriteError: the final document could not be written
        """
        proposal_config = self.prepare_config(config)

        filename_errors = validate_output_filename(output_file_name)
        if filename_errors:
            raise ConfigValidationError(filename_errors)

        created_by = created_by or self.settings.DEFAULT_CREATED_BY
        ensure_directory_exists(self.output_dir)

        logger.info(f"Starting proposal generation for {proposal_config.company}")

        record: Optional[ProposalVersionCreated] = None
        if output_file_name:
            # Stored under the same name the download route resolves
            file_name = sanitize_filename(output_file_name)
        else:
            record = await db_service.create_proposal_with_version(
                proposal_config,
                created_by=created_by,
            )
            file_name = db_service.generate_versioned_filename(
                proposal_config.company,
                record.version_number,
            )
            logger.info(f"Created proposal {record.proposal.id} ({record.version_label})")

        output_path = self.output_dir / file_name

        workspace = RunWorkspace(self.output_dir)
        temp_files: List[Path] = []
        try:
            front_page_path = await asyncio.to_thread(
                front_page_builder.generate_front_page,
                proposal_config,
                self.templates_dir,
                workspace.temp_path(FRONT_PAGE_TEMP_NAME),
            )
            temp_files.append(front_page_path)

            section_paths, toc_entries = await asyncio.to_thread(
                template_processor.process_templates,
                proposal_config,
                self.templates_dir,
                workspace,
            )
            temp_files.extend(section_paths)

            toc_path = await asyncio.to_thread(
                toc_renderer.render,
                toc_entries,
                workspace.temp_path(TOC_TEMP_NAME),
            )
            temp_files.append(toc_path)

            unnumbered_pages = self._leading_page_count(front_page_path, toc_path)

            await asyncio.to_thread(
                pdf_merger.merge_final_proposal,
                [front_page_path, toc_path, *section_paths],
                output_path,
                unnumbered_pages,
                workspace.root,
            )

            if record is not None:
                try:
                    await db_service.update_version_document_path(record.version.id, file_name)
                except PersistenceError:
                    logger.error(f"Could not record {file_name}, removing output")
                    output_path.unlink(missing_ok=True)
                    raise
        finally:
            removed = pdf_merger.cleanup_temp_files(temp_files, workspace)
            workspace.close()
            logger.debug(f"Removed {removed} temp files")

        file_size_bytes = get_file_size(output_path)
        result = GenerationResult(
            success=True,
            output_path=str(output_path.resolve()),
            file_name=file_name,
            location=self.download_url(file_name),
            file_size=format_file_size(file_size_bytes),
            file_size_bytes=file_size_bytes,
            company=proposal_config.company,
            sections_count=len(toc_entries),
            templates_processed=len(proposal_config.templates),
            generated_at=datetime.now(timezone.utc),
            database=self._database_info(record),
        )

        logger.info(f"Proposal generated: {file_name} ({result.file_size})")
        return result

    def _leading_page_count(self, front_page_path: Path, toc_path: Path) -> int:
        """Pages before the first content page, i.e. front page plus TOC."""
        leading = count_pages(front_page_path) + count_pages(toc_path)
        if leading > EXPECTED_LEADING_PAGES:
            logger.warning(
                f"Front page and table of contents span {leading} pages, "
                f"content numbering starts after page {leading}"
            )
        return leading

    @staticmethod
    def _database_info(record: Optional[ProposalVersionCreated]) -> Optional[DatabaseInfo]:
        if record is None:
            return None
        return DatabaseInfo(
            proposal_id=record.proposal.id,
            version_id=record.version.id,
            version_number=record.version_number,
            version_label=record.version_label,
            status=record.version.status,
        )

    async def generate_from_config_file(
        self,
        config_path: Optional[Union[str, Path]] = None,
        output_file_name: Optional[str] = None,
        created_by: Optional[str] = None
    ) -> GenerationResult:
        """Load a JSON configuration (default ``data.json``) and generate."""
        config_path = Path(config_path or self.settings.DEFAULT_CONFIG_FILE)
        logger.info(f"Loading configuration from {config_path}")
        config = await asyncio.to_thread(load_config_file, config_path)
        return await self.generate(config, output_file_name, created_by)

    # ===========================================
    # Versioning
    # ===========================================

    async def refine(
        self,
        proposal_id: str,
        config: Any = None,
        created_by: Optional[str] = None
    ) -> RefineResult:
        """
        Generate the next version of an existing proposal.

        Uses ``config`` when given, otherwise the configuration stored with
        the latest version.

        Raises:
            ProposalNotFoundError: no proposal with ``proposal_id``
            ConfigValidationError: no usable configuration
        """
        proposal = await db_service.get_proposal_with_versions(proposal_id)
        if proposal is None:
            raise ProposalNotFoundError(f"Proposal not found: {proposal_id}")

        if config is None:
            latest = proposal.versions[0] if proposal.versions else None
            if latest is None or not latest.proposal_data:
                raise ConfigValidationError(
                    ["No configuration stored for this proposal, provide one to refine"]
                )
            config = latest.proposal_data

        proposal_config = self.prepare_config(config)
        created_by = created_by or self.settings.DEFAULT_CREATED_BY

        version_number = await db_service.get_next_version_number(proposal_id)
        version_label = f"v{version_number}"
        file_name = db_service.generate_versioned_filename(proposal_config.company, version_number)

        logger.info(f"Refining proposal {proposal_id} into {version_label}")
        generation_result = await self.generate(
            proposal_config,
            output_file_name=file_name,
            created_by=created_by,
        )

        try:
            new_version = await db_service.create_proposal_version(
                proposal_id=proposal_id,
                version_number=version_number,
                version_label=version_label,
                document_path=file_name,
                status=VersionStatus.SUBMITTED,
                created_by=created_by,
                proposal_data=proposal_config.to_raw(),
            )
        except PersistenceError:
            logger.error(f"Could not record {version_label}, removing {file_name}")
            Path(generation_result.output_path).unlink(missing_ok=True)
            raise

        generation_result = generation_result.model_copy(update={
            "database": DatabaseInfo(
                proposal_id=proposal_id,
                version_id=new_version.id,
                version_number=new_version.version_number,
                version_label=new_version.version_label,
                status=new_version.status,
            )
        })

        return RefineResult(
            proposal=ProposalRecord(**proposal.model_dump(exclude={"versions"})),
            new_version=new_version,
            generation_result=generation_result,
        )

    # ===========================================
    # Pre-flight & Status
    # ===========================================

    def validate_templates(self, config: Any) -> TemplateValidationResult:
        """Check the front page template and every referenced file exist."""
        proposal_config = self.prepare_config(config)

        required = [self.settings.FRONT_PAGE_TEMPLATE, *proposal_config.referenced_files]
        missing = find_missing_templates(self.templates_dir, required)

        return TemplateValidationResult(
            valid=not missing,
            missing_templates=missing,
            total_templates=len(required),
            available_templates=len(required) - len(missing),
        )

    def get_status(self) -> Dict[str, Any]:
        """Service health summary."""
        return {
            "service": "Proposal Generator",
            "status": "operational",
            "templates_directory": str(self.templates_dir),
            "output_directory": str(self.output_dir),
            "templates_directory_exists": self.templates_dir.is_dir(),
            "output_directory_exists": self.output_dir.is_dir(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


# Singleton instance
proposal_generator = ProposalGenerator()
