"""Tests for the pay-ledger CLI command groups.

Each test runs against an isolated config/data directory.
"""

import json

import pytest
from click.testing import CliRunner

from payledger.cli.__main__ import cli
from payledger.sdk.pma import parse_tokens


@pytest.fixture
def isolated_ledger(tmp_path, monkeypatch):
    """Set up isolated config and data directories."""
    config_dir = tmp_path / "config"
    data_dir = tmp_path / "data"

    config_dir.mkdir()
    data_dir.mkdir()

    monkeypatch.setenv("PAY_LEDGER_CONFIG_PATH", str(config_dir))

    settings = {"data_dir": str(data_dir)}
    (config_dir / "settings.json").write_text(json.dumps(settings))

    return {
        "config_dir": config_dir,
        "data_dir": data_dir,
        "snapshot": data_dir / "ledger.json",
    }


def invoke(*args):
    result = CliRunner().invoke(cli, list(args))
    assert result.exit_code == 0, result.output
    return result


def add_worker(rate="100"):
    result = invoke("workers", "add", "Sami", "--payment-type", "daily",
                    "--daily-rate", rate, "--effective-date", "2023-01-01")
    return result.output.strip().rsplit(" ", 1)[-1]


def add_account():
    result = invoke("accounts", "add", "Rent", "A", "B")
    return result.output.strip().rsplit(" ", 1)[-1]


class TestWorkersCli:

    def test_add_and_list_json(self, isolated_ledger):
        worker_id = add_worker()
        result = invoke("workers", "list", "--format", "json")

        workers = json.loads(result.output)
        assert [w["id"] for w in workers] == [worker_id]
        assert workers[0]["salary_history"][0]["daily_rate"] == 100

    def test_raise_and_resolve(self, isolated_ledger):
        worker_id = add_worker()
        invoke("workers", "raise", worker_id, "2023-06-01",
               "--payment-type", "daily", "--daily-rate", "120")

        before = json.loads(invoke("workers", "rate", worker_id, "2023-05-31", "--format", "json").output)
        after = json.loads(invoke("workers", "rate", worker_id, "2023-06-01", "--format", "json").output)
        assert (before["daily_rate"], after["daily_rate"]) == (100, 120)

    def test_unknown_worker_is_click_error(self, isolated_ledger):
        result = CliRunner().invoke(cli, ["workers", "rate", "ghost", "2023-01-01"])
        assert result.exit_code == 1
        assert "Worker not found: ghost" in result.output


class TestDaysCli:

    def test_set_net_and_advance(self, isolated_ledger):
        worker_id = add_worker()
        invoke("days", "set", worker_id, "2023-06-01", "--status", "present")
        assert invoke("days", "net", worker_id, "2023-06-01").output.strip() == "100.00"

        invoke("advances", "add", f"{worker_id}-2023-06-01", "50", "--date", "2023-07-01")
        assert invoke("days", "net", worker_id, "2023-06-01").output.strip() == "50.00"

    def test_show_json_marks_drafts(self, isolated_ledger):
        worker_id = add_worker()
        rows = json.loads(invoke("days", "show", "2023-06-01", "--format", "json").output)

        assert rows[0]["worker_id"] == worker_id
        assert rows[0]["stored"] is False
        assert rows[0]["net_pay"] is None

    def test_export_import_legacy(self, isolated_ledger, tmp_path):
        worker_id = add_worker()
        invoke("days", "merge", worker_id, "2023-06-01", "--status", "present", "--notes", "late")
        invoke("advances", "add", f"{worker_id}-2023-06-01", "25")

        exported = json.loads(invoke("days", "export", "2023-06-01").output)
        assert len(parse_tokens(exported[0]["notes"])) == 1

        source = tmp_path / "day.json"
        exported[0]["smoking"] = 5
        source.write_text(json.dumps(exported))
        invoke("days", "import", str(source), "--date", "2023-06-01")

        history = json.loads(invoke("advances", "history", worker_id, "2023-06", "--format", "json").output)
        assert [h["kind"] for h in history] == ["deferred"]
        summary = json.loads(invoke("days", "summary", worker_id, "2023-06", "--format", "json").output)
        assert summary["deductions"] == 30.0

    def test_import_requires_date_or_range(self, isolated_ledger, tmp_path):
        source = tmp_path / "day.json"
        source.write_text("[]")
        result = CliRunner().invoke(cli, ["days", "import", str(source)])
        assert result.exit_code == 2


class TestAccountsCli:

    def test_pay_balance_reconcile(self, isolated_ledger):
        account_id = add_account()
        invoke("accounts", "pay", account_id, "200", "--payer", "A", "--payee", "B", "--date", "2023-06-01")

        balance = json.loads(invoke("accounts", "balance", account_id, "--format", "json").output)
        assert balance == {"party": "A", "balances": {"ILS": 200.0, "JOD": 0.0}}

        result = invoke("accounts", "reconcile", account_id, "--as-of", "2023-06-02")
        assert "Remaining for A from B: 200.00 ILS" in result.output

        balance = json.loads(invoke("accounts", "balance", account_id, "--party", "B", "--format", "json").output)
        assert balance["balances"] == {"ILS": 0.0, "JOD": 0.0}

    def test_show_text_table(self, isolated_ledger):
        account_id = add_account()
        invoke("accounts", "pay", account_id, "200", "--payer", "A", "--payee", "B", "--date", "2023-06-01")

        result = invoke("accounts", "show", account_id)
        assert "Rent" in result.output
        assert "2023-06-01" in result.output
        assert "Balance for A: 200.00 ILS, 0.00 JOD" in result.output

    def test_cheque_listing_and_manual_reconcile(self, isolated_ledger):
        account_id = add_account()
        invoke("accounts", "pay", account_id, "300", "--payer", "B", "--payee", "A",
               "--cheque", "1001", "--date", "2023-06-01")

        cheques = json.loads(invoke("accounts", "cheques", "--format", "json").output)
        assert [c["cheque_number"] for c in cheques] == ["1001"]

        result = invoke("accounts", "reconcile", account_id, "--manual", "ILS=-300", "--as-of", "2023-06-02")
        assert "Manual balance for A: owing 300.00 ILS" in result.output
        assert json.loads(invoke("accounts", "cheques", "--format", "json").output) == []

    def test_bad_manual_value(self, isolated_ledger):
        account_id = add_account()
        result = CliRunner().invoke(cli, ["accounts", "reconcile", account_id, "--manual", "ILS"])
        assert result.exit_code == 2

    def test_locked_checkpoint(self, isolated_ledger):
        account_id = add_account()
        invoke("accounts", "reconcile", account_id, "--as-of", "2023-06-01")
        invoke("accounts", "reconcile", account_id, "--as-of", "2023-06-02")

        shown = json.loads(invoke("accounts", "show", account_id, "--format", "json").output)
        first_id = shown["rows"][0]["id"]

        result = CliRunner().invoke(cli, ["accounts", "delete", first_id])
        assert result.exit_code == 1
        assert "not the latest checkpoint" in result.output

        result = CliRunner().invoke(cli, ["accounts", "delete", first_id, "--force"])
        assert result.exit_code == 0
        assert "Warning:" in result.output


class TestSettingsCli:

    def test_currencies(self, isolated_ledger):
        invoke("settings", "currencies", "usd", "eur")
        assert invoke("settings", "currencies").output.strip() == "USD, EUR"

    def test_show(self, isolated_ledger):
        result = invoke("settings", "show")
        assert str(isolated_ledger["snapshot"]) in result.output

    def test_data_dir_move_carries_snapshot(self, isolated_ledger, tmp_path):
        add_account()
        target = tmp_path / "moved"

        result = invoke("settings", "data-dir", str(target), "--move")

        assert f"Snapshot: {target / 'ledger.json'} (exists)" in result.output
        assert not isolated_ledger["snapshot"].exists()
        accounts = json.loads(invoke("accounts", "list", "--format", "json").output)
        assert [a["name"] for a in accounts] == ["Rent"]

    def test_data_dir_switch_without_move_warns(self, isolated_ledger, tmp_path):
        add_account()
        target = tmp_path / "fresh"

        result = invoke("settings", "data-dir", str(target))

        assert "Warning: ledger snapshot left at" in result.output
        assert "(not created yet)" in result.output
        assert isolated_ledger["snapshot"].exists()
