"""Tests for the typer CLI."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from captive_profiles.cli.app import app
from captive_profiles.storage.database import Database
from captive_profiles.storage.repositories import VersionStore
from tests.conftest import SAMPLE_LINES

runner = CliRunner()


@pytest.fixture
def env(tmp_path, monkeypatch):
    monkeypatch.setenv("CAPTIVE_PROFILES_DB", str(tmp_path / "cli.duckdb"))
    monkeypatch.setenv("CAPTIVE_PROFILES_PARAMS", str(tmp_path / "params.json"))
    return tmp_path


def _versions(tmp_path, vendor):
    with Database(str(tmp_path / "cli.duckdb")) as db:
        return VersionStore(db).list_versions(vendor)


class TestRevise:
    def test_sample_with_edits(self, env):
        result = runner.invoke(app, [
            "revise", "Acme", "--owner-id", "1", "--owner", "alice", "--sample",
            "--set", "radius.support_coa=true",
            "--set", "basic.model=AP-9",
            "--map", "client_mac=client_mac",
        ])
        assert result.exit_code == 0, result.output

        [version] = _versions(env, "Acme")
        assert version.owner_username == "alice"
        assert version.snapshot.model == "AP-9"
        assert version.snapshot.radius.support_coa is True
        assert version.snapshot.captive_portal.query_string_mapping == {"client_mac": "client_mac"}

    def test_log_file_and_previous(self, env):
        log = env / "access.log"
        log.write_text(SAMPLE_LINES["start"] + "\n")
        assert runner.invoke(app, ["revise", "Acme", "--owner-id", "1", "--sample"]).exit_code == 0

        result = runner.invoke(app, [
            "revise", "Acme", "--owner-id", "1", "--from-previous", "--log-file", str(log),
        ])
        assert result.exit_code == 0, result.output

        latest, first = _versions(env, "Acme")
        assert latest.parent_version_id == first.id
        assert latest.snapshot.captive_portal.redirection_url == (
            "https://portal.example.com/start?client_mac=AA:BB:CC:DD:EE:FF"
        )
        assert latest.snapshot.model == "Model-X100"

    def test_from_previous_without_history(self, env):
        result = runner.invoke(app, ["revise", "Nobody", "--owner-id", "1", "--from-previous"])
        assert result.exit_code == 0, result.output
        assert "No previous revisions found" in result.output

        [version] = _versions(env, "Nobody")
        assert version.version == 1
        assert version.parent_version_id is None
        assert version.snapshot.model == ""

    def test_numeric_text_kept_as_string(self, env):
        result = runner.invoke(app, [
            "revise", "Acme", "--owner-id", "1", "--set", "basic.firmware_version=2.0",
        ])
        assert result.exit_code == 0, result.output
        assert _versions(env, "Acme")[0].snapshot.firmware_version == "2.0"

    def test_wrong_type_for_flag_field(self, env):
        result = runner.invoke(app, [
            "revise", "Acme", "--owner-id", "1", "--set", "radius.support_coa=maybe",
        ])
        assert result.exit_code == 1
        assert _versions(env, "Acme") == []

    def test_dry_run_commits_nothing(self, env):
        result = runner.invoke(app, ["revise", "Acme", "--owner-id", "1", "--sample", "--dry-run"])
        assert result.exit_code == 0
        assert _versions(env, "Acme") == []


class TestVersionCommands:
    def test_export_then_import(self, env):
        runner.invoke(app, ["revise", "Acme", "--owner-id", "1", "--sample"])
        [version] = _versions(env, "Acme")
        out = env / "acme.json"

        result = runner.invoke(app, ["export", version.id, "--output", str(out)])
        assert result.exit_code == 0, result.output
        assert json.loads(out.read_text())["vendorName"] == "Acme"

        result = runner.invoke(app, ["revise", "Globex", "--owner-id", "2", "--import-file", str(out)])
        assert result.exit_code == 0, result.output
        [imported] = _versions(env, "Globex")
        assert imported.snapshot.model == version.snapshot.model

    def test_share_requires_owner(self, env):
        runner.invoke(app, ["revise", "Acme", "--owner-id", "1"])
        [version] = _versions(env, "Acme")

        assert runner.invoke(app, ["share", version.id, "bob", "--owner-id", "2"]).exit_code == 1
        assert runner.invoke(app, ["share", version.id, "bob", "carol", "--owner-id", "1"]).exit_code == 0
        assert _versions(env, "Acme")[0].shared_with_usernames == {"bob", "carol"}

    def test_delete_and_history(self, env):
        runner.invoke(app, ["revise", "Acme", "--owner-id", "1"])
        [version] = _versions(env, "Acme")

        assert runner.invoke(app, ["history"]).exit_code == 0
        assert runner.invoke(app, ["history", "Acme"]).exit_code == 0
        assert runner.invoke(app, ["show", version.id]).exit_code == 0
        assert runner.invoke(app, ["delete", version.id, "--owner-id", "1"]).exit_code == 0
        assert runner.invoke(app, ["history", "Acme"]).exit_code == 1


class TestParamsCommand:
    def test_add_remove_reset(self, env):
        params_file = env / "params.json"
        assert runner.invoke(app, ["params", "add", "vlan_id"]).exit_code == 0
        assert "vlan_id" in json.loads(params_file.read_text())

        assert runner.invoke(app, ["params", "remove", "vlan_id"]).exit_code == 0
        assert "vlan_id" not in json.loads(params_file.read_text())

        assert runner.invoke(app, ["params", "reset"]).exit_code == 0
        assert runner.invoke(app, ["params", "bogus"]).exit_code == 1


def test_extract_log_command(env):
    log = env / "access.log"
    log.write_text(SAMPLE_LINES["start"] + "\n" + SAMPLE_LINES["login"] + "\n")
    result = runner.invoke(app, ["extract-log", str(log)])
    assert result.exit_code == 0, result.output
    assert "client_mac" in result.output


def test_extract_pcap_command(env, radius_capture):
    capture = env / "radius.pcap"
    capture.write_bytes(radius_capture)
    result = runner.invoke(app, ["extract-pcap", str(capture), "--source-ip", "10.0.0.1"])
    assert result.exit_code == 0, result.output

    bad = runner.invoke(app, ["extract-pcap", str(capture), "--source-ip", "nope"])
    assert bad.exit_code == 1
