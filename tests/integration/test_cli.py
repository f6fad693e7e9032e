"""Integration tests for the fixloop command line."""

import json
import os
import tempfile
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from fixloop.cli.main import main

SOURCE = "def div(a, b):\n    return a / b\n"
ERROR = 'File "calc.py", line 2, in div\nZeroDivisionError: division by zero'

LLM_RESPONSE = (
    "<fix><line_start>2</line_start>"
    "<fixed>    return a / b if b else 0</fixed>"
    "<explanation>Guard the divisor.</explanation></fix>"
)


def completion(text):
    return MagicMock(choices=[MagicMock(message=MagicMock(content=text))])


@pytest.fixture
def workdir():
    with tempfile.TemporaryDirectory() as tmpdir:
        (Path(tmpdir) / "calc.py").write_text(SOURCE)
        yield Path(tmpdir)


class TestRepairCommand:
    """Tests for `fixloop repair`."""

    @patch('fixloop.workspace.runner.subprocess.run')
    def test_no_llm_rejected_before_tests_run(self, mock_run, workdir, capsys):
        code = main(["repair", ERROR, "--root", str(workdir), "--no-llm", "--no-stats"])

        err = capsys.readouterr().err
        assert code == 1
        assert "No patch source available (--no-llm flag)" in err
        mock_run.assert_not_called()
        assert (workdir / "calc.py").read_text() == SOURCE

    @patch('fixloop.core.engine.get_config_value', return_value=None)
    def test_missing_api_key_rejected(self, mock_get_config, workdir, capsys):
        code = main(["repair", ERROR, "--root", str(workdir), "--no-tests", "--no-stats"])

        assert code == 1
        assert "no OpenAI API key" in capsys.readouterr().err

    @patch('fixloop.llm.clients.openai.OpenAI')
    def test_llm_fix_untested(self, mock_openai_class, workdir, capsys):
        mock_openai_class.return_value.chat.completions.create.return_value = completion(LLM_RESPONSE)
        stats_file = workdir / "stats.json"

        with patch.dict(os.environ, {"OPENAI_API_KEY": "sk-test"}):
            code = main(["repair", ERROR, "--root", str(workdir), "--no-tests",
                         "--stats-file", str(stats_file)])

        out = capsys.readouterr().out
        assert code == 0
        assert "Status: Fixed (untested)" in out
        assert "Repaired 1/1 faults" in out
        assert "if b else 0" in (workdir / "calc.py").read_text()

        saved = json.loads(stats_file.read_text())
        assert saved["statistics"]["repaired_faults"] == 1

        assert main(["stats", "--stats-file", str(stats_file)]) == 0
        assert "llm-generated: 100%" in capsys.readouterr().out

    @patch('fixloop.llm.clients.openai.OpenAI')
    def test_error_file(self, mock_openai_class, workdir, capsys):
        error_file = workdir / "trace.txt"
        error_file.write_text("Something failed with no location")

        with patch.dict(os.environ, {"OPENAI_API_KEY": "sk-test"}):
            code = main(["repair", "--error-file", str(error_file), "--root", str(workdir),
                         "--no-tests", "--no-stats"])

        assert code == 1
        assert "No fault could be localized" in capsys.readouterr().out
        mock_openai_class.return_value.chat.completions.create.assert_not_called()

    def test_missing_root(self, capsys):
        code = main(["repair", ERROR, "--root", "/nonexistent/project", "--no-llm", "--no-tests", "--no-stats"])
        assert code == 1
        assert "Project root not found" in capsys.readouterr().err

    def test_invalid_config_override(self, workdir, capsys):
        code = main(["repair", ERROR, "--root", str(workdir), "--max-iterations", "0",
                     "--no-llm", "--no-tests", "--no-stats"])
        assert code == 1
        assert "max_iterations" in capsys.readouterr().err


class TestStatsCommand:
    """Tests for `fixloop stats`."""

    def test_missing_stats_file(self, capsys):
        assert main(["stats", "--stats-file", "/nonexistent/stats.json"]) == 0
        assert "No statistics found" in capsys.readouterr().out

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
