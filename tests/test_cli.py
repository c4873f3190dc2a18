"""Tests for the admin CLI against the configured in-memory database."""

import json

from click.testing import CliRunner

from funeral_core.cli import cli


def test_provision_and_show_policy():
    runner = CliRunner()

    created = runner.invoke(cli, ["create-tables"])
    assert created.exit_code == 0
    assert "Created" in created.output

    first = runner.invoke(cli, ["provision-policies", "--funeral-home-id", "fh_cli"])
    assert first.exit_code == 0
    assert "Provisioned invitation_management policy for fh_cli" in first.output

    again = runner.invoke(cli, ["provision-policies", "--funeral-home-id", "fh_cli"])
    assert again.exit_code == 0
    assert "All policies already provisioned" in again.output

    shown = runner.invoke(
        cli, ["show-policy", "--funeral-home-id", "fh_cli", "--policy-type", "note_management"]
    )
    assert shown.exit_code == 0
    header, body = shown.output.split("\n", 1)
    assert header.startswith("v1 current=True by cli")
    assert "max_content_length" in json.loads(body)


def test_show_missing_policy_exits_nonzero():
    runner = CliRunner()
    runner.invoke(cli, ["create-tables"])

    result = runner.invoke(
        cli, ["show-policy", "--funeral-home-id", "fh_cli_missing", "--policy-type", "lead_scoring"]
    )

    assert result.exit_code == 1
    assert "❌" in result.output


def test_pending_templates_when_none():
    runner = CliRunner()
    runner.invoke(cli, ["create-tables"])

    result = runner.invoke(cli, ["pending-templates", "--funeral-home-id", "fh_cli_empty"])

    assert result.exit_code == 0
    assert "No templates pending approval" in result.output
