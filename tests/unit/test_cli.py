"""Unit tests for the command-line interface."""

import json

import pytest
import typer
from typer.testing import CliRunner

from intentsmith import __version__
from intentsmith import cli
from intentsmith.models.permission import ProtectionLevel

runner = CliRunner()

TABLE = {
    "version": "test",
    "permissions": {
        "android.permission.RECEIVE_BOOT_COMPLETED": "normal",
        "android.permission.READ_CONTACTS": "dangerous",
        "android.permission.BIND_JOB_SERVICE": "signature",
    },
}


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep the host environment and logging configuration out of CLI runs."""
    for name in (
        "INTENTSMITH_LLM_URL",
        "INTENTSMITH_LLM_MODEL",
        "INTENTSMITH_LLM_KEY",
        "INTENTSMITH_LLM_PROVIDER",
        "INTENTSMITH_LOG_LEVEL",
        "ANDROID_SERIAL",
    ):
        monkeypatch.delenv(name, raising=False)
    calls = []
    monkeypatch.setattr(cli, "setup_logging", lambda level, json_output=None: calls.append((level, json_output)))
    return calls


@pytest.fixture
def table_file(temp_dir):
    path = temp_dir / "permissions.json"
    path.write_text(json.dumps(TABLE), encoding="utf-8")
    return path


class TestScanCommand:
    """Tests for the scan command."""

    def test_scan_writes_json_report(self, project_tree, table_file, temp_dir):
        """Test a full scan with a JSON report.

        Verifies the default threshold (signature), the report ordering and
        that the malformed manifest is reported as a warning.
        """
        out = temp_dir / "report.json"
        result = runner.invoke(cli.app, [
            "scan", str(project_tree),
            "--permission-table", str(table_file),
            "--json", str(out),
        ])

        assert result.exit_code == 0, result.output
        report = json.loads(out.read_text(encoding="utf-8"))
        names = [r["component"]["name"] for r in report["reports"]]
        assert names[0] == "com.example.app.DeepLinkActivity"
        assert "org.other.tool.JobService" in names
        assert report["counts"]["manifests_found"] == 3
        assert report["warnings"][0]["scope"] == "file"

    def test_filters_passed_through(self, project_tree, table_file, temp_dir):
        out = temp_dir / "report.json"
        result = runner.invoke(cli.app, [
            "scan", str(project_tree),
            "--permission-table", str(table_file),
            "--max-permission-level", "normal",
            "--package", "com.example.app",
            "--exclude-disabled",
            "--json", str(out),
        ])

        assert result.exit_code == 0, result.output
        names = [r["component"]["name"] for r in json.loads(out.read_text())["reports"]]
        assert names == [
            "com.example.app.DeepLinkActivity",
            "com.example.app.Launcher",
            "com.example.app.MainActivity",
        ]

    def test_serial_in_commands(self, project_tree, table_file, temp_dir):
        out = temp_dir / "report.json"
        result = runner.invoke(cli.app, [
            "scan", str(project_tree),
            "--permission-table", str(table_file),
            "--serial", "emulator-5554",
            "--json", str(out),
        ])

        assert result.exit_code == 0, result.output
        commands = [r["command"]["command"] for r in json.loads(out.read_text())["reports"]]
        assert all(c.startswith("adb -s emulator-5554 shell ") for c in commands)

    def test_log_options_passed_to_setup(self, project_tree, table_file, isolated_env):
        result = runner.invoke(cli.app, [
            "scan", str(project_tree),
            "--permission-table", str(table_file),
            "--log-level", "debug",
            "--log-json",
        ])
        assert result.exit_code == 0, result.output
        assert isolated_env == [("DEBUG", True)]

    def test_missing_root_exits_with_error(self, temp_dir):
        result = runner.invoke(cli.app, ["scan", str(temp_dir / "nope")])
        assert result.exit_code == 2

    def test_bad_permission_table_exits_with_error(self, project_tree, temp_dir):
        bad = temp_dir / "bad.json"
        bad.write_text("{not json", encoding="utf-8")
        result = runner.invoke(cli.app, ["scan", str(project_tree), "--permission-table", str(bad)])
        assert result.exit_code == 2

    def test_invalid_permission_level(self, project_tree):
        result = runner.invoke(cli.app, ["scan", str(project_tree), "--max-permission-level", "root"])
        assert result.exit_code == 2


class TestHelpers:
    """Tests for option parsing helpers."""

    @pytest.mark.parametrize("value,expected", [
        ("normal", ProtectionLevel.NORMAL),
        ("dangerous", ProtectionLevel.DANGEROUS),
        ("signature", ProtectionLevel.SIGNATURE),
        ("signatureOrSystem", ProtectionLevel.SIGNATURE_OR_SYSTEM),
        ("any", None),
        ("ANY", None),
    ])
    def test_parse_permission_level(self, value, expected):
        assert cli.parse_permission_level(value) is expected

    def test_parse_permission_level_rejects_unknown(self):
        with pytest.raises(typer.BadParameter):
            cli.parse_permission_level("bogus")

    def test_resolve_model(self):
        """Test model selection by index, exact id and unique substring."""
        available = ["llama-3-8b-instruct", "qwen2.5-coder-7b", "qwen2.5-7b"]
        assert cli.resolve_model("1", available) == "qwen2.5-coder-7b"
        assert cli.resolve_model("qwen2.5-7b", available) == "qwen2.5-7b"
        assert cli.resolve_model("llama", available) == "llama-3-8b-instruct"
        assert cli.resolve_model("qwen", available) == "qwen"
        assert cli.resolve_model("mistral", available) == "mistral"

    def test_resolve_model_index_out_of_range(self):
        with pytest.raises(typer.BadParameter):
            cli.resolve_model("9", ["only-one"])


class TestOtherCommands:
    """Tests for the models and version commands."""

    def test_version(self):
        result = runner.invoke(cli.app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_models_requires_endpoint(self):
        result = runner.invoke(cli.app, ["models"])
        assert result.exit_code == 2

    def test_models_lists_catalogue(self, monkeypatch):
        monkeypatch.setattr(cli, "_fetch_models", lambda llm: ["alpha", "beta"])
        result = runner.invoke(cli.app, ["models", "--llm-url", "http://localhost:1234/v1"])
        assert result.exit_code == 0
        assert "alpha" in result.output
        assert "beta" in result.output
