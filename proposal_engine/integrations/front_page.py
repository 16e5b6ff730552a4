"""Front page generation for proposals."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Union

from reportlab.lib.colors import Color
from reportlab.pdfgen import canvas

from proposal_engine.core.config import get_settings
from proposal_engine.errors import FieldNotFoundError
from proposal_engine.integrations.pdf_forms import (
    blank_footer_bands,
    flatten_form,
    open_pdf,
    save_pdf,
    set_text_field,
)
from proposal_engine.models import ProposalConfig

logger = logging.getLogger(__name__)

A4 = (595.28, 841.89)
COMPANY_FIELD = "CompanyName"
YEAR_FIELD = "date"


class FrontPageBuilder:
    """
    Builds the single-page cover of a proposal.

    Fills the cover template when it is available and readable, otherwise
    draws a plain cover with reportlab.
    """

    def __init__(self):
        """Initialize builder."""
        self._settings = None

    @property
    def settings(self):
        """Lazy load settings."""
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    def generate_front_page(
        self,
        config: ProposalConfig,
        templates_dir: Union[str, Path],
        output_path: Union[str, Path]
    ) -> Path:
        """
        Generate the front page.

        Args:
            config: Proposal configuration
            templates_dir: Directory holding the cover template
            output_path: Where to write the cover PDF

        Returns:
            Path to the generated single-page PDF
        """
        template_path = Path(templates_dir) / self.settings.FRONT_PAGE_TEMPLATE
        output_path = Path(output_path)

        if not template_path.exists():
            logger.warning(f"{template_path.name} not found, creating basic front page")
            return self.create_basic_front_page(config, output_path)

        try:
            doc = open_pdf(template_path)
            try:
                self._fill_form_fields(doc, config)
                blank_footer_bands(doc)
                flatten_form(doc)
                save_pdf(doc, output_path)
            finally:
                doc.close()

            logger.info(f"Front page generated using {template_path.name}")
            return output_path

        except Exception as e:
            logger.warning(f"Error with {template_path.name} ({e}), creating basic front page")
            return self.create_basic_front_page(config, output_path)

    def _fill_form_fields(self, doc, config: ProposalConfig) -> None:
        company = config.company or "Company Name"
        try:
            set_text_field(doc, COMPANY_FIELD, company)
            logger.info(f"Filled {COMPANY_FIELD}: {company}")
        except FieldNotFoundError:
            logger.warning(f"{COMPANY_FIELD} field not found in template")

        year = str(datetime.now().year)
        try:
            set_text_field(doc, YEAR_FIELD, year)
            logger.info(f"Filled {YEAR_FIELD}: {year}")
        except FieldNotFoundError:
            logger.warning(f"{YEAR_FIELD} field not found in template")

    def create_basic_front_page(self, config: ProposalConfig, output_path: Union[str, Path]) -> Path:
        """Draw a plain cover page; depends on nothing but the base-14 fonts."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        height = A4[1]
        c = canvas.Canvas(str(output_path), pagesize=A4)

        c.setFillColor(Color(0, 0, 0))
        c.setFont("Helvetica-Bold", 24)
        c.drawString(50, height - 100, config.company or "Company Proposal")

        c.setFont("Helvetica", 18)
        c.drawString(50, height - 150, self.settings.PROPOSAL_SUBTITLE)

        c.setFillColor(Color(0.5, 0.5, 0.5))
        c.setFont("Helvetica", 12)
        c.drawString(50, height - 200, f"Generated: {datetime.now().strftime('%d/%m/%Y')}")

        c.showPage()
        c.save()

        logger.info("Basic front page created programmatically")
        return output_path


# Singleton instance
front_page_builder = FrontPageBuilder()
