"""
Tests for sequential batch processing with per-mailbox failure isolation
"""

from conftest import MockGraphClient, local
from oof_manager import batch
from oof_manager.models import NOT_APPLICABLE, BackupRecord, Status


def fixed_now():
    return local(2025, 5, 30, 12, 0, 0)


def test_backup_scenario_one_success_one_failure(enabled_config):
    client = MockGraphClient({"a@x.com": enabled_config}, failing={"b@x.com"})
    output = batch.backup(client, ["a@x.com", "b@x.com"], now=fixed_now)

    assert (output.success_count, output.failure_count) == (1, 1)
    first, second = output.rows()
    assert first["Identity"] == "a@x.com"
    assert first["State"] == "Enabled"
    assert first["InternalMessage"] == "Out of office"
    assert first["Error"] == ""
    assert second["Identity"] == "b@x.com"
    assert second["State"] == ""
    assert "Mailbox not found" in second["Error"]


def test_failure_does_not_stop_later_mailboxes(scheduled_config):
    client = MockGraphClient(failing={"b@x.com"})
    output = batch.deploy(client, ["a@x.com", "b@x.com", "c@x.com"], scheduled_config)

    assert client.calls == [("set", "a@x.com"), ("set", "b@x.com"), ("set", "c@x.com")]
    assert [r.status for r in output.records] == [Status.SUCCESS, Status.FAILURE, Status.SUCCESS]
    assert "Access is denied" in output.records[1].detail
    assert client.mailboxes["c@x.com"] is scheduled_config


def test_counts_always_add_up(enabled_config):
    identities = [f"user{i}@x.com" for i in range(7)]
    client = MockGraphClient(failing={"user1@x.com", "user4@x.com", "user6@x.com"})
    output = batch.deploy(client, identities, enabled_config)
    assert output.success_count + output.failure_count == len(identities) == output.total
    assert output.failure_count == 3
    assert [r.identity for r in output.records] == identities


def test_one_call_per_identity_even_for_duplicates(enabled_config):
    client = MockGraphClient({"a@x.com": enabled_config})
    output = batch.backup(client, ["a@x.com", "a@x.com"], now=fixed_now)
    assert client.calls == [("get", "a@x.com"), ("get", "a@x.com")]
    assert output.success_count == 2


def test_unexpected_exception_is_recorded():
    class Exploding(MockGraphClient):
        def set_auto_reply_config(self, identity, config):
            raise ConnectionResetError()

    output = batch.deploy(Exploding(), ["a@x.com"], None)
    assert output.failure_count == 1
    assert output.records[0].detail == "ConnectionResetError"


def test_non_scheduled_results_use_not_applicable(enabled_config):
    output = batch.deploy(MockGraphClient(), ["a@x.com"], enabled_config)
    row = output.rows()[0]
    assert row["StartTime"] == NOT_APPLICABLE
    assert row["EndTime"] == NOT_APPLICABLE
    assert row["Status"] == "Success"


def test_scheduled_results_carry_real_timestamps(scheduled_config):
    output = batch.deploy(MockGraphClient(), ["a@x.com"], scheduled_config)
    row = output.rows()[0]
    assert row["StartTime"] != NOT_APPLICABLE and row["StartTime"].startswith("2025-06-01T09:00:00")
    assert row["EndTime"].startswith("2025-06-15T17:00:00")


def test_restore_reports_failed_backup_rows_without_calling_graph(scheduled_config, enabled_config):
    records = [
        BackupRecord("a@x.com", fixed_now(), config=scheduled_config),
        BackupRecord("b@x.com", fixed_now(), error="HTTP 404"),
        BackupRecord("c@x.com", fixed_now(), config=enabled_config),
    ]
    client = MockGraphClient()
    output = batch.restore(client, records)
    assert client.calls == [("set", "a@x.com"), ("set", "c@x.com")]
    assert client.mailboxes == {"a@x.com": scheduled_config, "c@x.com": enabled_config}
    assert output.success_count == 2 and output.failure_count == 1
    assert [r.identity for r in output.records] == ["a@x.com", "b@x.com", "c@x.com"]
    skipped = output.records[1]
    assert skipped.status is Status.FAILURE and skipped.config is None
    assert skipped.detail == "skipped: no configuration in backup (HTTP 404)"
    assert skipped.as_row()["State"] == "" and skipped.as_row()["StartTime"] == ""


def test_empty_batch():
    output = batch.backup(MockGraphClient(), [])
    assert output.records == () and output.total == 0
