"""Tests for the Supabase database service."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from proposal_engine.core.database import ProposalDatabaseService
from proposal_engine.errors import PersistenceError
from proposal_engine.models import ProposalConfig, VersionStatus


def response(data):
    result = MagicMock()
    result.data = data
    return result


@pytest.fixture
def service(mock_supabase_client):
    return ProposalDatabaseService()


class TestCreateOperations:
    """Tests for inserts."""

    def test_create_proposal(self, service, mock_supabase_client, sample_proposal_row):
        insert = mock_supabase_client.table.return_value.insert
        insert.return_value.execute.return_value = response([sample_proposal_row])

        proposal = asyncio.run(service.create_proposal("Acme", created_by="user_1"))

        assert proposal.id == "prop_123"
        mock_supabase_client.table.assert_called_with("proposals")
        payload = insert.call_args.args[0]
        assert payload["title"] == "Acme"
        assert payload["created_by"] == "user_1"

    def test_create_proposal_empty_insert(self, service, mock_supabase_client):
        mock_supabase_client.table.return_value.insert.return_value.execute.return_value = response([])

        with pytest.raises(PersistenceError):
            asyncio.run(service.create_proposal("Acme"))

    def test_create_proposal_client_error(self, service, mock_supabase_client):
        mock_supabase_client.table.return_value.insert.return_value.execute.side_effect = RuntimeError("timeout")

        with pytest.raises(PersistenceError, match="timeout"):
            asyncio.run(service.create_proposal("Acme"))

    def test_create_proposal_with_version(self, service, mock_supabase_client, sample_proposal_row, sample_version_row, sample_config):
        insert = mock_supabase_client.table.return_value.insert
        insert.return_value.execute.side_effect = [
            response([sample_proposal_row]),
            response([sample_version_row]),
        ]
        config = ProposalConfig.from_raw(sample_config)

        created = asyncio.run(service.create_proposal_with_version(config, created_by="user_1"))

        assert created.proposal.id == "prop_123"
        assert created.version.id == "ver_1"
        assert created.version_number == 1
        assert created.version_label == "v1"

        version_payload = insert.call_args_list[1].args[0]
        assert version_payload["proposal_id"] == "prop_123"
        assert version_payload["version_number"] == 1
        assert version_payload["status"] == "submitted"
        assert version_payload["proposal_data"] == config.to_raw()


class TestReadOperations:
    """Tests for lookups."""

    def test_next_version_number(self, service, mock_supabase_client):
        chain = mock_supabase_client.table.return_value.select.return_value.eq.return_value
        chain.order.return_value.limit.return_value.execute.return_value = response([{"version_number": 3}])

        assert asyncio.run(service.get_next_version_number("prop_123")) == 4
        chain.order.assert_called_with("version_number", desc=True)

    def test_next_version_number_first(self, service, mock_supabase_client):
        chain = mock_supabase_client.table.return_value.select.return_value.eq.return_value
        chain.order.return_value.limit.return_value.execute.return_value = response([])

        assert asyncio.run(service.get_next_version_number("prop_123")) == 1

    def test_get_proposal_not_found(self, service, mock_supabase_client):
        chain = mock_supabase_client.table.return_value.select.return_value.eq.return_value
        chain.limit.return_value.execute.return_value = response([])

        assert asyncio.run(service.get_proposal("missing")) is None

    def test_find_proposal_by_title(self, service, mock_supabase_client, sample_proposal_row):
        chain = mock_supabase_client.table.return_value.select.return_value.eq.return_value
        chain.limit.return_value.execute.return_value = response([sample_proposal_row])

        proposal = asyncio.run(service.find_proposal_by_title("Acme"))

        assert proposal.title == "Acme"

    def test_get_proposal_with_versions(self, service, mock_supabase_client, sample_proposal_row, sample_version_row):
        chain = mock_supabase_client.table.return_value.select.return_value.eq.return_value
        chain.limit.return_value.execute.return_value = response([sample_proposal_row])
        chain.order.return_value.execute.return_value = response([
            {**sample_version_row, "id": "ver_2", "version_number": 2, "version_label": "v2"},
            sample_version_row,
        ])

        proposal = asyncio.run(service.get_proposal_with_versions("prop_123"))

        assert proposal.id == "prop_123"
        assert [version.version_number for version in proposal.versions] == [2, 1]
        assert proposal.versions[1].proposal_data["Company"] == "Acme"

    def test_get_templates_by_names(self, service, mock_supabase_client):
        rows = [{"name": "Intro", "path": "Intro.pdf", "editable": False}]
        select = mock_supabase_client.table.return_value.select
        select.return_value.in_.return_value.execute.return_value = response(rows)

        assert asyncio.run(service.get_templates_by_names(["Intro", "Fees"])) == rows
        mock_supabase_client.table.assert_called_with("Templates")
        select.return_value.in_.assert_called_with("name", ["Intro", "Fees"])

    def test_get_templates_no_names(self, service, mock_supabase_client):
        assert asyncio.run(service.get_templates_by_names([])) == []
        mock_supabase_client.table.assert_not_called()


class TestUpdateOperations:
    """Tests for version updates."""

    def test_update_status(self, service, mock_supabase_client, sample_version_row):
        update = mock_supabase_client.table.return_value.update
        update.return_value.eq.return_value.execute.return_value = response([
            {**sample_version_row, "status": "approved"}
        ])

        version = asyncio.run(service.update_version_status("ver_1", "approved"))

        assert version.status == VersionStatus.APPROVED
        update.assert_called_with({"status": "approved"})
        update.return_value.eq.assert_called_with("id", "ver_1")

    def test_update_invalid_status(self, service, mock_supabase_client):
        with pytest.raises(ValueError):
            asyncio.run(service.update_version_status("ver_1", "published"))
        mock_supabase_client.table.assert_not_called()

    def test_update_missing_version(self, service, mock_supabase_client):
        update = mock_supabase_client.table.return_value.update
        update.return_value.eq.return_value.execute.return_value = response([])

        with pytest.raises(PersistenceError):
            asyncio.run(service.update_version_document_path("missing", "file.pdf"))


class TestGenerateVersionedFilename:
    """Tests for version file naming."""

    def test_format(self):
        created_at = datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc)

        name = ProposalDatabaseService.generate_versioned_filename("Acme", 3, created_at)

        assert name == "Proposal__Acme_v3_2024-05-01_100000.pdf"

    def test_company_is_cleaned(self):
        created_at = datetime(2024, 5, 1, 10, 0, 0, tzinfo=timezone.utc)

        name = ProposalDatabaseService.generate_versioned_filename("Smith & Sons,  Ltd.", 1, created_at)

        assert name == "Proposal__Smith_Sons_Ltd_v1_2024-05-01_100000.pdf"

    def test_converted_to_utc(self):
        created_at = datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone(timedelta(hours=2)))

        name = ProposalDatabaseService.generate_versioned_filename("Acme", 1, created_at)

        assert name.endswith("_2024-05-01_103000.pdf")


class TestHealthCheck:
    """Tests for connectivity check."""

    def test_healthy(self, service, mock_supabase_client):
        assert asyncio.run(service.health_check()) is True

    def test_unhealthy(self, service, mock_supabase_client):
        mock_supabase_client.table.side_effect = RuntimeError("connection refused")

        assert asyncio.run(service.health_check()) is False


class TestClient:
    """Tests for client initialization."""

    def test_missing_credentials(self, monkeypatch):
        settings = MagicMock(SUPABASE_URL="", SUPABASE_KEY="")
        monkeypatch.setattr("proposal_engine.core.database.get_settings", lambda: settings)

        with pytest.raises(PersistenceError):
            ProposalDatabaseService().client
