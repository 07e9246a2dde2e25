"""
Tests for the command-line interface.
"""

import json
import logging
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from gene_msa_collector.cli import cli
from gene_msa_collector.collector.orchestrator import RunReport
from gene_msa_collector.errors import BrowserLaunchError
from gene_msa_collector.models.entities import Gene
from gene_msa_collector.storage import ArtifactStorage

from conftest import make_fasta


@pytest.fixture(autouse=True)
def restore_root_logging():
    """The CLI reconfigures the root logger; put it back afterwards."""
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_file(tmp_path):
    """Config file pointing all output at the test's temporary directory."""
    output_dir = tmp_path / "out"
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "run": {
            "output_dir": str(output_dir),
            "failed_dir": str(output_dir / "failed"),
            "genes_csv": str(tmp_path / "genes.csv"),
            "delay_between_genes": 0
        },
        "logging": {"level": "WARNING"}
    }), encoding="utf-8")
    return path


@pytest.fixture
def output_storage(tmp_path):
    output_dir = tmp_path / "out"
    storage = ArtifactStorage(output_dir, output_dir / "failed")
    storage.ensure_directories()
    return storage


class TestCollectCommand:
    """The collect command."""

    def test_collect_test_mode_limits_genes(self, runner, config_file, tmp_path):
        (tmp_path / "genes.csv").write_text(
            "\n".join(f'"gene{i}","Medtr{i:04d}s0001"' for i in range(8)),
            encoding="utf-8"
        )
        report = RunReport(total=3, success_count=2, fail_count=1, output_dir=tmp_path / "out",
                           failure_log_path=tmp_path / "out" / "failed" / "failed_genes.json",
                           failed_genes=["gene1"])

        with patch("gene_msa_collector.collector.orchestrator.run_collection",
                   new_callable=AsyncMock, return_value=report) as mock_run:
            result = runner.invoke(cli, ["--config", str(config_file), "collect",
                                         "--headless", "--test", "--limit", "3"])

        assert result.exit_code == 0, result.output
        genes, config = mock_run.await_args.args
        assert [g.name for g in genes] == ["gene0", "gene1", "gene2"]
        assert config.browser.headless is True
        assert "Successful: 2" in result.output
        assert "Failed: 1" in result.output
        assert "failed_genes.json" in result.output

    def test_collect_output_dir_override(self, runner, config_file, tmp_path):
        (tmp_path / "genes.csv").write_text('"TauD","Medtr0021s0370"\n', encoding="utf-8")
        elsewhere = tmp_path / "elsewhere"

        with patch("gene_msa_collector.collector.orchestrator.run_collection",
                   new_callable=AsyncMock, return_value=RunReport(total=1, success_count=1, output_dir=elsewhere)) as mock_run:
            result = runner.invoke(cli, ["--config", str(config_file), "collect", "--output-dir", str(elsewhere)])

        assert result.exit_code == 0, result.output
        config = mock_run.await_args.args[1]
        assert config.run.output_dir == str(elsewhere)
        assert config.run.failed_dir == str(elsewhere / "failed")

    def test_collect_fatal_error_exits_nonzero(self, runner, config_file, tmp_path):
        (tmp_path / "genes.csv").write_text('"TauD","Medtr0021s0370"\n', encoding="utf-8")

        with patch("gene_msa_collector.collector.orchestrator.run_collection",
                   new_callable=AsyncMock, side_effect=BrowserLaunchError("no chromium")):
            result = runner.invoke(cli, ["--config", str(config_file), "collect"])

        assert result.exit_code == 1
        assert "Collection failed: no chromium" in result.output

    def test_collect_missing_genes_file(self, runner, config_file):
        result = runner.invoke(cli, ["--config", str(config_file), "collect"])

        assert result.exit_code == 1
        assert "genes.csv" in result.output


class TestMaintenanceCommands:
    """summary, cleanup and validate."""

    def test_summary(self, runner, config_file, output_storage):
        output_storage.save_artifact(Gene(name="TauD", id="a"), make_fasta(300))
        output_storage.record_failure(Gene(name="AroB", id="b"), "MSA export option not found")

        result = runner.invoke(cli, ["--config", str(config_file), "summary"])

        assert result.exit_code == 0, result.output
        assert "Collected 1 genes" in result.output
        assert "TauD: 300 bytes" in result.output
        assert "AroB: MSA export option not found" in result.output

    def test_cleanup_lists_without_removing(self, runner, config_file, output_storage):
        bad = output_storage.save_artifact(Gene(name="bad", id="a"), "\x89PNG" + make_fasta(300))
        output_storage.save_artifact(Gene(name="good", id="b"), make_fasta(300))

        result = runner.invoke(cli, ["--config", str(config_file), "cleanup"])

        assert result.exit_code == 0, result.output
        assert "Corrupted files: 1" in result.output
        assert "bad.txt" in result.output
        assert bad.exists()

    def test_cleanup_remove(self, runner, config_file, output_storage):
        bad = output_storage.save_artifact(Gene(name="bad", id="a"), "not an alignment")

        result = runner.invoke(cli, ["--config", str(config_file), "cleanup", "--remove"])

        assert result.exit_code == 0, result.output
        assert "Removed 1 corrupted files." in result.output
        assert not bad.exists()

    def test_validate_valid_file(self, runner, tmp_path):
        path = tmp_path / "TauD.txt"
        path.write_text(make_fasta(300), encoding="utf-8")

        result = runner.invoke(cli, ["validate", str(path)])

        assert result.exit_code == 0
        assert "VALID: " in result.output
        assert "INVALID" not in result.output

    def test_validate_invalid_file(self, runner, tmp_path):
        path = tmp_path / "bad.txt"
        path.write_text("short", encoding="utf-8")

        result = runner.invoke(cli, ["validate", str(path)])

        assert result.exit_code == 1
        assert "[too_short]" in result.output

    def test_config_export(self, runner, tmp_path):
        output = tmp_path / "exported.json"

        result = runner.invoke(cli, ["config-export", "--output", str(output)])

        assert result.exit_code == 0, result.output
        assert json.loads(output.read_text())["retry"]["max_attempts"] == 3
