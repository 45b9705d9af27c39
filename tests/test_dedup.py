"""
Tests for duplicate detection and the admin cleanup pass.
"""

import pytest
from sqlalchemy import select

from app.models.evidence import Evidence, EvidenceStatus
from app.services.dedup import cleanup_duplicates, is_duplicate


async def _remaining_ids(db) -> set[str]:
    result = await db.execute(select(Evidence.id))
    return {row[0] for row in result.all()}


class TestIsDuplicate:

    @pytest.mark.asyncio
    async def test_case_insensitive_match(self, db, make_evidence):
        await make_evidence(title="Theft", description="Saw it happen")
        assert await is_duplicate(db, "THEFT", "saw IT happen") is True

    @pytest.mark.asyncio
    async def test_both_fields_must_match(self, db, make_evidence):
        await make_evidence(title="Theft", description="Saw it happen")
        assert await is_duplicate(db, "Theft", "Saw something else") is False
        assert await is_duplicate(db, "Robbery", "Saw it happen") is False

    @pytest.mark.asyncio
    async def test_deleted_records_ignored(self, db, make_evidence):
        await make_evidence(title="Theft", description="Saw it happen", status=EvidenceStatus.deleted)
        assert await is_duplicate(db, "Theft", "Saw it happen") is False

    @pytest.mark.asyncio
    async def test_reviewed_records_still_count(self, db, make_evidence):
        await make_evidence(title="Theft", description="Saw it happen", status=EvidenceStatus.reviewed)
        assert await is_duplicate(db, "Theft", "Saw it happen") is True

    @pytest.mark.asyncio
    async def test_empty_input(self, db):
        assert await is_duplicate(db, "", "x") is False


class TestCleanupDuplicates:

    @pytest.mark.asyncio
    async def test_keeps_newest_of_three(self, db, make_evidence):
        oldest = await make_evidence(email="a@example.org", ip_address="1.2.3.4", age_seconds=300)
        middle = await make_evidence(email="a@example.org", ip_address="1.2.3.4", age_seconds=200)
        newest = await make_evidence(email="A@Example.org", ip_address="1.2.3.4", age_seconds=100)

        removed = await cleanup_duplicates(db)

        assert removed == 2
        remaining = await _remaining_ids(db)
        assert newest.id in remaining
        assert oldest.id not in remaining
        assert middle.id not in remaining

    @pytest.mark.asyncio
    async def test_null_email_and_ip_group_together(self, db, make_evidence):
        await make_evidence(email=None, ip_address=None, age_seconds=50)
        keep = await make_evidence(email=None, ip_address=None, age_seconds=10)

        assert await cleanup_duplicates(db) == 1
        assert await _remaining_ids(db) == {keep.id}

    @pytest.mark.asyncio
    async def test_different_ip_is_not_a_duplicate(self, db, make_evidence):
        await make_evidence(ip_address="1.2.3.4", age_seconds=50)
        await make_evidence(ip_address="5.6.7.8", age_seconds=10)

        assert await cleanup_duplicates(db) == 0

    @pytest.mark.asyncio
    async def test_only_submitted_rows_considered(self, db, make_evidence):
        reviewed = await make_evidence(status=EvidenceStatus.reviewed, age_seconds=50)
        submitted = await make_evidence(age_seconds=10)

        assert await cleanup_duplicates(db) == 0
        assert await _remaining_ids(db) == {reviewed.id, submitted.id}

    @pytest.mark.asyncio
    async def test_nothing_to_do(self, db):
        assert await cleanup_duplicates(db) == 0
