"""Unit tests for ledger snapshots."""

import json

import pytest

from prledger.services.contributions.backup import snapshot_ledgers

from tests.helpers.fakes import FakeUserOps, make_db, make_user


class TestSnapshotLedgers:
    @pytest.mark.asyncio
    async def test_in_memory_snapshot(self):
        users = FakeUserOps([make_user("octocat", points=150, badges=["Newcomer"])])

        backup = await snapshot_ledgers(make_db(), backup_dir="", users=users)

        assert backup.path is None
        assert backup.users[0]["username"] == "octocat"
        assert backup.users[0]["points"] == 150
        assert backup.summary()["users"] == 1

    @pytest.mark.asyncio
    async def test_writes_json_file(self, tmp_path):
        users = FakeUserOps(
            [make_user("octocat", merged_entries=[{"repo_url": "x", "pr_number": 1}])]
        )

        backup = await snapshot_ledgers(make_db(), backup_dir=str(tmp_path / "backups"), users=users)

        assert backup.path is not None
        data = json.loads(open(backup.path, encoding="utf-8").read())
        assert data["users"][0]["merged_entries"] == [{"repo_url": "x", "pr_number": 1}]
