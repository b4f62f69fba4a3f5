"""Tests for the click CLI (state kept in a temp snapshot file)."""

import json

import pytest
from click.testing import CliRunner

from crop_compliance.cli import main

HASH_HEX = "00" * 32


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def cli(runner, state_path):
    """Invoke the CLI against a temp state file."""

    def _invoke(*args):
        return runner.invoke(main, ["--state", str(state_path), *args])

    return _invoke


@pytest.fixture
def initialized(cli):
    assert cli("init", "--admin", "deployer").exit_code == 0
    return cli


@pytest.fixture
def with_policy(initialized, project_root):
    policy = project_root / "config" / "policies" / "usda_gmo.yaml"
    result = initialized("load-policy", str(policy), "--caller", "deployer")
    assert result.exit_code == 0, result.output
    return initialized


def test_init_creates_state(initialized, state_path):
    """init writes a fresh state file with the given admin."""
    data = json.loads(state_path.read_text())
    assert data["admin"] == "deployer"
    assert data["version"] == 1


def test_init_refuses_overwrite(initialized):
    """init will not overwrite a state file without --force."""
    assert initialized("init").exit_code == 1
    assert initialized("init", "--force", "--admin", "other").exit_code == 0


def test_commands_need_state(cli):
    """Commands fail cleanly when no state file exists."""
    result = cli("status")
    assert result.exit_code == 1
    assert "init" in result.output


def test_non_admin_rejected(initialized, state_path):
    """A rejected call exits 1 and leaves the state file untouched."""
    before = state_path.read_text()
    result = initialized("add-standard", "1", "USDA", "USDA GMO Standards", "--caller", "wallet_2")
    assert result.exit_code == 1
    assert "UNAUTHORIZED" in result.output
    assert state_path.read_text() == before


def test_build_policy_by_hand(initialized, state_path):
    """Standards and all three rule kinds can be added from the CLI."""
    c = "--caller"
    assert initialized("add-standard", "1", "USDA", "GMO", c, "deployer").exit_code == 0
    assert initialized("add-numerical-rule", "1", "1", "Pesticide", "--min", "0", "--max", "100",
                       c, "deployer").exit_code == 0
    assert initialized("add-categorical-rule", "1", "2", "Gene", "-k", "BT", "-k", "HT",
                       c, "deployer").exit_code == 0
    assert initialized("add-temporal-rule", "1", "3", "Growth", "--max-duration", "1000",
                       c, "deployer").exit_code == 0

    data = json.loads(state_path.read_text())
    assert len(data["rules"]) == 3
    assert data["rules"][1]["categories"] == ["BT", "HT"]

    bad = initialized("add-numerical-rule", "1", "4", "Bad", "--min", "5", "--max", "1", c, "deployer")
    assert bad.exit_code == 1
    assert "INVALID_RULE" in bad.output


def test_verify_pass(with_policy, state_path):
    """A passing submission exits 0 and records a verification."""
    result = with_policy(
        "verify", "crop1", "1", "--value", "50", "--category", "BT", "--duration", "500",
        "--data-hash", HASH_HEX, "--clock", "100",
    )
    assert result.exit_code == 0, result.output
    assert "COMPLIANT" in result.output
    data = json.loads(state_path.read_text())
    assert data["version"] == 2
    assert data["compliance"][0]["compliant"] is True


def test_verify_fail_still_saved(with_policy, state_path):
    """A failing submission exits 1 but its verification is saved."""
    result = with_policy(
        "verify", "crop1", "1", "--value", "150", "--category", "BT", "--duration", "500",
        "--data-hash", HASH_HEX,
    )
    assert result.exit_code == 1
    assert "VERIFICATION_FAILED" in result.output
    data = json.loads(state_path.read_text())
    assert data["verifications"][0]["failed_rule_ids"] == [1]
    assert data["compliance"][0]["compliant"] is False


def test_verify_with_data_file(with_policy, tmp_path, state_path):
    """--data-file hashes the file into the verification record."""
    import hashlib

    raw = tmp_path / "readings.csv"
    raw.write_text("value,category,duration\n50,BT,500\n")
    result = with_policy(
        "verify", "crop1", "1", "--value", "50", "--category", "BT", "--duration", "500",
        "--data-file", str(raw),
    )
    assert result.exit_code == 0, result.output
    stored = json.loads(state_path.read_text())["verifications"][0]["data_hash"]
    assert stored == hashlib.sha256(raw.read_bytes()).hexdigest()


def test_verify_hash_options(with_policy):
    """verify needs exactly one of --data-hash and --data-file."""
    base = ["verify", "crop1", "1", "--value", "50", "--category", "BT", "--duration", "5"]
    assert with_policy(*base).exit_code == 2
    assert with_policy(*base, "--data-hash", "abcd").exit_code == 2


def test_pause_blocks_verify(with_policy):
    """Verification is refused while paused."""
    assert with_policy("pause", "--caller", "deployer").exit_code == 0
    result = with_policy(
        "verify", "crop1", "1", "--value", "50", "--category", "BT", "--duration", "500",
        "--data-hash", HASH_HEX,
    )
    assert result.exit_code == 1
    assert "PAUSED" in result.output
    assert with_policy("unpause", "--caller", "deployer").exit_code == 0


def test_deactivate_and_inspect(with_policy):
    """Deactivated rules show as inactive and stop failing submissions."""
    assert with_policy("deactivate-rule", "1", "1", "--caller", "deployer").exit_code == 0
    assert with_policy("deactivate-rule", "1", "9", "--caller", "deployer").exit_code == 1

    result = with_policy(
        "verify", "crop1", "1", "--value", "150", "--category", "BT", "--duration", "500",
        "--data-hash", HASH_HEX,
    )
    assert result.exit_code == 0, result.output

    assert with_policy("rules", "1").exit_code == 0
    assert with_policy("status").exit_code == 0
    assert with_policy("verification", "crop1", "2").exit_code == 0
    assert with_policy("verification", "crop1", "99").exit_code == 1
    assert "COMPLIANT" in with_policy("compliance", "crop1", "1").output
    assert with_policy("history", "crop1").exit_code == 0


def test_set_admin(initialized, state_path):
    """set-admin hands over the role and persists it."""
    assert initialized("set-admin", "wallet_1", "--caller", "deployer").exit_code == 0
    assert json.loads(state_path.read_text())["admin"] == "wallet_1"
    assert initialized("pause", "--caller", "deployer").exit_code == 1
