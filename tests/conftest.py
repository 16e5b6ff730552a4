"""Pytest fixtures and configuration for Proposal Engine tests."""

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Generator, Iterable, Tuple
from unittest.mock import AsyncMock, MagicMock, patch

import fitz  # PyMuPDF
import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing app
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-key")
os.environ.setdefault("DEBUG", "true")

from proposal_engine.core.database import ProposalDatabaseService  # noqa: E402
from proposal_engine.models import (  # noqa: E402
    ProposalRecord,
    ProposalVersionCreated,
    ProposalVersionRecord,
    ProposalWithVersions,
    VersionStatus,
)
from proposal_engine.services.proposal_generator import ProposalGenerator  # noqa: E402

A4 = (595.28, 841.89)

FieldSpec = Tuple[str, int, Tuple[float, float, float, float]]


# ===========================================
# PDF Builders
# ===========================================

def build_pdf(
    path: Path,
    pages: int = 1,
    text_fields: Iterable[FieldSpec] = (),
    body: str = "Section content"
) -> Path:
    """Write an A4 PDF with ``pages`` pages and optional text form fields."""
    path.parent.mkdir(parents=True, exist_ok=True)
    doc = fitz.open()
    created = []
    for index in range(pages):
        page = doc.new_page(width=A4[0], height=A4[1])
        created.append(page)
        page.insert_text((72, 72), f"{body} {index + 1}", fontsize=12)

    for name, page_index, rect in text_fields:
        widget = fitz.Widget()
        widget.field_name = name
        widget.field_type = fitz.PDF_WIDGET_TYPE_TEXT
        widget.rect = fitz.Rect(rect)
        widget.field_value = ""
        created[page_index].add_widget(widget)

    doc.save(str(path))
    doc.close()
    return path


def build_png(path: Path, width: int = 40, height: int = 20) -> Path:
    """Write a solid-colour PNG of the given size."""
    path.parent.mkdir(parents=True, exist_ok=True)
    pixmap = fitz.Pixmap(fitz.csRGB, fitz.IRect(0, 0, width, height), 0)
    pixmap.clear_with(180)
    pixmap.save(str(path))
    return path


def read_page_texts(pdf_path: Path) -> list:
    """Extracted text of every page of a PDF."""
    with fitz.open(str(pdf_path)) as doc:
        return [page.get_text() for page in doc]


@pytest.fixture
def pdf_factory():
    """The :func:`build_pdf` helper."""
    return build_pdf


@pytest.fixture
def png_factory():
    """The :func:`build_png` helper."""
    return build_png


@pytest.fixture
def page_texts():
    """The :func:`read_page_texts` helper."""
    return read_page_texts


# ===========================================
# Directory Fixtures
# ===========================================

@pytest.fixture
def templates_dir(tmp_path: Path) -> Path:
    path = tmp_path / "Templates"
    path.mkdir()
    return path


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    path = tmp_path / "Output"
    path.mkdir()
    return path


@pytest.fixture
def generator(templates_dir: Path, output_dir: Path) -> ProposalGenerator:
    """Generator bound to the temporary directories."""
    return ProposalGenerator(templates_dir=templates_dir, output_dir=output_dir)


# ===========================================
# Sample Data Fixtures
# ===========================================

@pytest.fixture
def sample_config() -> Dict[str, Any]:
    """Single plain section configuration."""
    return {
        "Company": "Acme",
        "Templates": [
            {"name": "Intro", "fileName": "Intro.pdf", "editable": False}
        ]
    }


@pytest.fixture
def sample_proposal_row() -> Dict[str, Any]:
    return {
        "id": "prop_123",
        "title": "Acme",
        "created_by": "user_1",
        "created_at": "2024-05-01T10:00:00+00:00",
    }


@pytest.fixture
def sample_version_row(sample_config) -> Dict[str, Any]:
    return {
        "id": "ver_1",
        "proposal_id": "prop_123",
        "version_number": 1,
        "version_label": "v1",
        "document_path": "Proposal__Acme_v1_2024-05-01_100000.pdf",
        "status": "submitted",
        "created_by": "user_1",
        "proposal_data": sample_config,
        "created_at": "2024-05-01T10:00:00+00:00",
    }


# ===========================================
# Mock Fixtures
# ===========================================

@pytest.fixture
def mock_supabase_client():
    """MagicMock standing in for the supabase client."""
    client = MagicMock()
    with patch.object(ProposalDatabaseService, "client", new=client):
        yield client


@pytest.fixture
def mock_db(sample_proposal_row, sample_version_row):
    """Database service mock used by the generator."""
    with patch("proposal_engine.services.proposal_generator.db_service") as mock:
        proposal = ProposalRecord(**sample_proposal_row)
        version = ProposalVersionRecord(**{**sample_version_row, "document_path": None})

        mock.create_proposal_with_version = AsyncMock(return_value=ProposalVersionCreated(
            proposal=proposal,
            version=version,
            version_number=1,
            version_label="v1",
        ))
        mock.update_version_document_path = AsyncMock(return_value=version)
        mock.generate_versioned_filename.side_effect = (
            lambda company, number, created_at=None: ProposalDatabaseService.generate_versioned_filename(
                company, number, datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc)
            )
        )
        mock.get_proposal_with_versions = AsyncMock(return_value=ProposalWithVersions(
            **sample_proposal_row,
            versions=[ProposalVersionRecord(**sample_version_row)],
        ))
        mock.get_next_version_number = AsyncMock(return_value=2)
        mock.create_proposal_version = AsyncMock(return_value=ProposalVersionRecord(
            **{
                **sample_version_row,
                "id": "ver_2",
                "version_number": 2,
                "version_label": "v2",
                "document_path": "Proposal__Acme_v2_2024-05-01_100000.pdf",
                "status": VersionStatus.SUBMITTED.value,
            }
        ))
        yield mock


# ===========================================
# Client Fixtures
# ===========================================

@pytest.fixture
def client(generator, mock_db) -> Generator[TestClient, None, None]:
    """Test client with the generator bound to temp dirs and the database mocked."""
    from proposal_engine.main import app
    with patch("proposal_engine.api.proposals.proposal_generator", generator), \
            patch("proposal_engine.api.proposals.db_service", mock_db), \
            patch("proposal_engine.main.db_service") as main_db:
        main_db.health_check = AsyncMock(return_value=True)
        with TestClient(app) as test_client:
            yield test_client


# ===========================================
# Pytest Configuration
# ===========================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
