"""Tests for CLI commands."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from docvault.cli import _setup_logging, app
from docvault.errors import GeminiError
from docvault.llm.gemini import GenerationResult

runner = CliRunner()


@pytest.fixture
def docs(tmp_path: Path) -> Path:
    folder = tmp_path / "docs"
    folder.mkdir()
    (folder / "notes.txt").write_text(
        "The launch is scheduled for March. The budget was approved in January.",
        encoding="utf-8",
    )
    (folder / "menu.md").write_text("Soup is served on Mondays.", encoding="utf-8")
    return folder


class TestSetupLogging:
    """Tests for _setup_logging helper."""

    def test_setup_logging_verbose(self) -> None:
        """Verbose mode sets DEBUG level."""
        with patch("docvault.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=True)
            assert mock_config.call_args[1]["level"] == logging.DEBUG

    def test_setup_logging_normal(self) -> None:
        """Normal mode sets INFO level."""
        with patch("docvault.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=False)
            assert mock_config.call_args[1]["level"] == logging.INFO


class TestAskCommand:
    """Tests for the ask command."""

    def test_ask_prints_results(self, docs: Path) -> None:
        result = runner.invoke(app, ["ask", "budget", str(docs), "--show-prompt"])

        assert result.exit_code == 0, result.stdout
        assert "Rank" in result.stdout
        assert "Question: budget" in result.stdout
        assert "[Document: notes.txt | Chunk: " in result.stdout

    def test_ask_no_documents(self, tmp_path: Path) -> None:
        empty = tmp_path / "empty"
        empty.mkdir()

        result = runner.invoke(app, ["ask", "anything", str(empty)])

        assert result.exit_code == 1
        assert "No documents ingested" in result.stdout

    def test_ask_reports_named_pdf(self, tmp_path: Path) -> None:
        """A PDF named on the command line is rejected with a message."""
        pdf = tmp_path / "scan.pdf"
        pdf.write_bytes(b"%PDF-1.4")

        result = runner.invoke(app, ["ask", "anything", str(pdf)])

        assert result.exit_code == 1
        assert "Skipped scan.pdf" in result.stdout
        assert "No documents ingested" in result.stdout

    def test_ask_ignores_pdf_in_folder(self, docs: Path) -> None:
        (docs / "scan.pdf").write_bytes(b"%PDF-1.4")

        result = runner.invoke(app, ["ask", "budget", str(docs)])

        assert result.exit_code == 0, result.stdout
        assert "scan.pdf" not in result.stdout

    def test_ask_named_file_with_unknown_extension(self, tmp_path: Path) -> None:
        """Files named directly go through the plain-text fallback whatever their suffix."""
        log = tmp_path / "deploy.log"
        log.write_text("Deployment finished. The budget dashboard is live.", encoding="utf-8")

        result = runner.invoke(app, ["ask", "budget", str(log), "--show-prompt"])

        assert result.exit_code == 0, result.stdout
        assert "[Document: deploy.log | Chunk: " in result.stdout
        assert "No documents ingested" not in result.stdout

    def test_ask_invalid_chunking(self, docs: Path) -> None:
        result = runner.invoke(
            app, ["ask", "budget", str(docs), "--chunk-size", "10", "--overlap", "10"]
        )

        assert result.exit_code == 2

    @patch("docvault.cli.GeminiClient")
    def test_ask_generate(self, mock_client_class: MagicMock, docs: Path) -> None:
        gemini = mock_client_class.from_config.return_value.__enter__.return_value
        gemini.answer.return_value = GenerationResult(
            text="It was approved in January.",
            provider="Google Gemini",
            model="gemini-test",
        )

        result = runner.invoke(app, ["ask", "budget", str(docs), "--generate"])

        assert result.exit_code == 0, result.stdout
        assert "It was approved in January." in result.stdout
        gemini.answer.assert_called_once()

    @patch("docvault.cli.GeminiClient")
    def test_ask_generate_failure(self, mock_client_class: MagicMock, docs: Path) -> None:
        mock_client_class.from_config.side_effect = GeminiError("No Gemini API key configured")

        result = runner.invoke(app, ["ask", "budget", str(docs), "-g"])

        assert result.exit_code == 1
        assert "Answer generation failed" in result.stdout


class TestStatsCommand:
    """Tests for the stats command."""

    def test_stats(self, docs: Path) -> None:
        result = runner.invoke(app, ["stats", str(docs)])

        assert result.exit_code == 0
        assert "Documents: 2" in result.stdout

    def test_stats_reports_skipped(self, docs: Path) -> None:
        binary = docs / "blob.txt"
        binary.write_bytes(b"\xff\xfe\xfa")

        result = runner.invoke(app, ["stats", str(docs)])

        assert result.exit_code == 0
        assert "Skipped blob.txt" in result.stdout
        assert "Documents: 2" in result.stdout


class TestWebCommand:
    """Tests for the web command."""

    @patch("uvicorn.run")
    def test_web_starts_server(self, mock_run: MagicMock) -> None:
        result = runner.invoke(app, ["web", "--host", "0.0.0.0", "--port", "9000"])

        assert result.exit_code == 0
        assert "http://0.0.0.0:9000" in result.stdout
        kwargs = mock_run.call_args.kwargs
        assert kwargs["host"] == "0.0.0.0"
        assert kwargs["port"] == 9000
        assert mock_run.call_args.args == ("docvault.web.app:create_app",)
        assert kwargs["factory"] is True
