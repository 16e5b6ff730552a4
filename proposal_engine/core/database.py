"""Supabase database service for proposals and their versions."""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from supabase import Client, create_client
from supabase.lib.client_options import ClientOptions

from proposal_engine.core.config import get_settings
from proposal_engine.errors import PersistenceError
from proposal_engine.models import (
    ProposalConfig,
    ProposalRecord,
    ProposalVersionCreated,
    ProposalVersionRecord,
    ProposalWithVersions,
    VersionStatus,
)

logger = logging.getLogger(__name__)


class ProposalDatabaseService:
    """
    Service for Supabase database operations.

    Handles the ``proposals`` and ``proposal_versions`` tables and the
    ``Templates`` lookup table. Uses the sync Supabase client behind an
    async interface; every failure is raised as :class:`PersistenceError`
    since version bookkeeping drives output naming.
    """

    PROPOSALS_TABLE = "proposals"
    VERSIONS_TABLE = "proposal_versions"
    TEMPLATES_TABLE = "Templates"

    def __init__(self):
        """Initialize Supabase client."""
        self._client: Optional[Client] = None

    @property
    def client(self) -> Client:
        """Lazy initialization of Supabase client."""
        if self._client is None:
            settings = get_settings()
            if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
                raise PersistenceError("Supabase credentials not configured")

            self._client = create_client(
                settings.SUPABASE_URL,
                settings.SUPABASE_KEY,
                options=ClientOptions(
                    postgrest_client_timeout=30,
                    storage_client_timeout=30
                )
            )
            logger.info("Supabase client initialized")
        return self._client

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).isoformat()

    # ===========================================
    # Create Operations
    # ===========================================

    async def create_proposal(self, title: str, created_by: Optional[str] = None) -> ProposalRecord:
        """Insert a ``proposals`` row."""
        try:
            response = (
                self.client.table(self.PROPOSALS_TABLE)
                .insert({
                    "title": title,
                    "created_by": created_by,
                    "created_at": self._now(),
                })
                .execute()
            )
        except PersistenceError:
            raise
        except Exception as e:
            logger.error(f"Failed to create proposal: {e}")
            raise PersistenceError(f"Failed to create proposal: {e}") from e

        if not response.data:
            logger.error("Insert returned no data")
            raise PersistenceError("Failed to create proposal: insert returned no data")

        proposal = ProposalRecord(**response.data[0])
        logger.info(f"Created proposal: {proposal.id}")
        return proposal

    async def create_proposal_version(
        self,
        proposal_id: str,
        version_number: int = 1,
        version_label: Optional[str] = None,
        document_path: Optional[str] = None,
        status: VersionStatus = VersionStatus.SUBMITTED,
        created_by: Optional[str] = None,
        proposal_data: Optional[Dict[str, Any]] = None
    ) -> ProposalVersionRecord:
        """Insert a ``proposal_versions`` row."""
        try:
            response = (
                self.client.table(self.VERSIONS_TABLE)
                .insert({
                    "proposal_id": proposal_id,
                    "version_number": version_number,
                    "version_label": version_label or f"v{version_number}",
                    "document_path": document_path,
                    "status": VersionStatus(status).value,
                    "created_by": created_by,
                    "proposal_data": proposal_data,
                    "created_at": self._now(),
                })
                .execute()
            )
        except PersistenceError:
            raise
        except Exception as e:
            logger.error(f"Failed to create proposal version: {e}")
            raise PersistenceError(f"Failed to create proposal version: {e}") from e

        if not response.data:
            logger.error("Insert returned no data")
            raise PersistenceError("Failed to create proposal version: insert returned no data")

        version = ProposalVersionRecord(**response.data[0])
        logger.info(f"Created version {version.version_label} of proposal {proposal_id}")
        return version

    async def create_proposal_with_version(
        self,
        config: ProposalConfig,
        document_path: Optional[str] = None,
        created_by: Optional[str] = None
    ) -> ProposalVersionCreated:
        """Create a new proposal together with its version 1."""
        proposal = await self.create_proposal(config.company, created_by)
        version = await self.create_proposal_version(
            proposal_id=proposal.id,
            version_number=1,
            version_label="v1",
            document_path=document_path,
            created_by=created_by,
            proposal_data=config.to_raw(),
        )
        return ProposalVersionCreated(
            proposal=proposal,
            version=version,
            version_number=1,
            version_label="v1",
        )

    # ===========================================
    # Read Operations
    # ===========================================

    async def get_next_version_number(self, proposal_id: str) -> int:
        """Highest existing version number plus one; 1 for a new proposal."""
        try:
            response = (
                self.client.table(self.VERSIONS_TABLE)
                .select("version_number")
                .eq("proposal_id", proposal_id)
                .order("version_number", desc=True)
                .limit(1)
                .execute()
            )
        except PersistenceError:
            raise
        except Exception as e:
            logger.error(f"Failed to get next version number for {proposal_id}: {e}")
            raise PersistenceError(f"Failed to get next version number: {e}") from e

        if response.data:
            return int(response.data[0]["version_number"]) + 1
        return 1

    async def find_proposal_by_title(self, title: str) -> Optional[ProposalRecord]:
        """Fetch the first proposal with ``title``."""
        try:
            response = (
                self.client.table(self.PROPOSALS_TABLE)
                .select("*")
                .eq("title", title)
                .limit(1)
                .execute()
            )
        except PersistenceError:
            raise
        except Exception as e:
            logger.error(f"Failed to find proposal {title}: {e}")
            raise PersistenceError(f"Failed to find proposal: {e}") from e

        if response.data:
            return ProposalRecord(**response.data[0])
        return None

    async def get_proposal(self, proposal_id: str) -> Optional[ProposalRecord]:
        """Fetch proposal by ID."""
        try:
            response = (
                self.client.table(self.PROPOSALS_TABLE)
                .select("*")
                .eq("id", proposal_id)
                .limit(1)
                .execute()
            )
        except PersistenceError:
            raise
        except Exception as e:
            logger.error(f"Failed to get proposal {proposal_id}: {e}")
            raise PersistenceError(f"Failed to get proposal: {e}") from e

        if response.data:
            return ProposalRecord(**response.data[0])

        logger.warning(f"Proposal not found: {proposal_id}")
        return None

    async def get_proposal_with_versions(self, proposal_id: str) -> Optional[ProposalWithVersions]:
        """Fetch proposal by ID with its versions, newest first."""
        proposal = await self.get_proposal(proposal_id)
        if proposal is None:
            return None

        try:
            response = (
                self.client.table(self.VERSIONS_TABLE)
                .select("*")
                .eq("proposal_id", proposal_id)
                .order("version_number", desc=True)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to get versions of proposal {proposal_id}: {e}")
            raise PersistenceError(f"Failed to get proposal versions: {e}") from e

        versions = [ProposalVersionRecord(**record) for record in response.data or []]
        return ProposalWithVersions(**proposal.model_dump(), versions=versions)

    async def get_templates_by_names(self, names: List[str]) -> List[Dict[str, Any]]:
        """Rows of the ``Templates`` table whose name is in ``names``."""
        if not names:
            return []
        try:
            response = (
                self.client.table(self.TEMPLATES_TABLE)
                .select("name, path, editable")
                .in_("name", names)
                .execute()
            )
        except PersistenceError:
            raise
        except Exception as e:
            logger.error(f"Failed to fetch templates: {e}")
            raise PersistenceError(f"Failed to fetch templates: {e}") from e

        return response.data or []

    # ===========================================
    # Update Operations
    # ===========================================

    async def update_version(
        self,
        version_id: str,
        updates: Dict[str, Any]
    ) -> ProposalVersionRecord:
        """Update a version with partial data."""
        try:
            response = (
                self.client.table(self.VERSIONS_TABLE)
                .update(updates)
                .eq("id", version_id)
                .execute()
            )
        except PersistenceError:
            raise
        except Exception as e:
            logger.error(f"Failed to update version {version_id}: {e}")
            raise PersistenceError(f"Failed to update version: {e}") from e

        if not response.data:
            logger.warning(f"Update returned no data for {version_id}")
            raise PersistenceError(f"Version not found: {version_id}")

        logger.info(f"Updated version {version_id}: {list(updates.keys())}")
        return ProposalVersionRecord(**response.data[0])

    async def update_version_document_path(
        self,
        version_id: str,
        document_path: str
    ) -> ProposalVersionRecord:
        """Record the generated file of a version."""
        return await self.update_version(version_id, {"document_path": document_path})

    async def update_version_status(self, version_id: str, status: str) -> ProposalVersionRecord:
        """
        Update version status.

        Raises:
            ValueError: when ``status`` is not a known version status
        """
        valid = VersionStatus(status)
        return await self.update_version(version_id, {"status": valid.value})

    # ===========================================
    # Naming
    # ===========================================

    @staticmethod
    def generate_versioned_filename(
        company: str,
        version_number: int,
        created_at: Optional[datetime] = None
    ) -> str:
        """
        File name for a proposal version.

        Format: ``Proposal__<Company>_v<n>_<YYYY-MM-DD>_<HHMMSS>.pdf`` with
        the company reduced to letters, digits and underscores.
        """
        created_at = created_at or datetime.now(timezone.utc)
        if created_at.tzinfo is not None:
            created_at = created_at.astimezone(timezone.utc)

        company_part = re.sub(r"[^a-zA-Z0-9\s]", "", company)
        company_part = re.sub(r"\s+", "_", company_part)

        date_part = created_at.strftime("%Y-%m-%d")
        time_part = created_at.strftime("%H%M%S")
        return f"Proposal__{company_part}_v{version_number}_{date_part}_{time_part}.pdf"

    # ===========================================
    # Health Check
    # ===========================================

    async def health_check(self) -> bool:
        """Check database connectivity."""
        try:
            self.client.table(self.PROPOSALS_TABLE).select("id").limit(1).execute()
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False


# Singleton instance
db_service = ProposalDatabaseService()
