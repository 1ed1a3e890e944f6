"""
Integration Tests for the signal-drill CLI.

Commands run in-process through typer's CliRunner against the in-memory
test database.
"""

import json

import pytest
from typer.testing import CliRunner

import src.cli.study_cli as study_cli

pytestmark = pytest.mark.integration

runner = CliRunner()


@pytest.fixture(autouse=True)
def wired_cli(monkeypatch, study_engine, session_factory):
    monkeypatch.setattr(study_cli, "_engine", lambda: study_engine)
    monkeypatch.setattr(study_cli, "get_session_factory", lambda: session_factory)
    monkeypatch.setattr(study_cli, "init_db", lambda: None)
    monkeypatch.setattr(study_cli, "configure_logging", lambda *args, **kwargs: None)
    return study_engine


class TestCLIHelp:
    def test_main_help(self):
        result = runner.invoke(study_cli.app, ["--help"])

        assert result.exit_code == 0
        for command in ("session", "drill", "answer", "stats", "boxes", "init-db", "import-questions"):
            assert command in result.stdout


class TestSessionCommand:
    def test_lists_new_cards(self):
        result = runner.invoke(study_cli.app, ["session", "--learner", "learner-1", "--category", "Betriebsdienst"])

        assert result.exit_code == 0, result.stdout
        assert "bd-001" in result.stdout
        assert "bd-002" in result.stdout
        assert "sig-001" not in result.stdout

    def test_empty_session(self):
        result = runner.invoke(study_cli.app, ["session", "--mode", "practice", "--category", "Unbekannt"])

        assert result.exit_code == 0
        assert "No questions match" in result.stdout

    def test_boxes_mode_requires_box(self):
        result = runner.invoke(study_cli.app, ["session", "--learner", "learner-1", "--mode", "boxes"])

        assert result.exit_code == 1
        assert "box_number is required" in result.stdout

    @pytest.mark.parametrize("command", ["session", "drill"])
    def test_unknown_mode_is_a_usage_error(self, command):
        result = runner.invoke(study_cli.app, [command, "--learner", "learner-1", "--mode", "foo"])

        assert result.exit_code == 2
        assert isinstance(result.exception, SystemExit)

    def test_mode_is_case_insensitive(self):
        result = runner.invoke(study_cli.app, ["session", "--mode", "PRACTICE", "--category", "Betriebsdienst"])

        assert result.exit_code == 0, result.stdout
        assert "bd-001" in result.stdout


class TestAnswerCommand:
    def test_records_answer(self, wired_cli):
        result = runner.invoke(study_cli.app, ["answer", "sig-001", "5", "--learner", "learner-1"])

        assert result.exit_code == 0, result.stdout
        assert "Box 2" in result.stdout
        assert "+15 XP" in result.stdout
        assert wired_cli.get_stats("learner-1").xp == 15

    def test_guest_answer(self):
        result = runner.invoke(study_cli.app, ["answer", "sig-001", "5"])

        assert result.exit_code == 0
        assert "not saved" in result.stdout

    def test_invalid_score(self):
        result = runner.invoke(study_cli.app, ["answer", "sig-001", "9", "--learner", "learner-1"])

        assert result.exit_code == 1
        assert "Score must be an integer between 0 and 5" in result.stdout

    def test_unknown_question(self):
        result = runner.invoke(study_cli.app, ["answer", "missing", "3", "--learner", "learner-1"])

        assert result.exit_code == 1
        assert "Question not found" in result.stdout


class TestStatsAndBoxes:
    def test_stats(self, wired_cli):
        wired_cli.submit_answer("learner-1", "sig-001", 4)

        result = runner.invoke(study_cli.app, ["stats", "learner-1"])

        assert result.exit_code == 0
        assert "12" in result.stdout
        assert "Day streak" in result.stdout

    def test_boxes(self, wired_cli):
        wired_cli.submit_answer("learner-1", "sig-001", 1)

        result = runner.invoke(study_cli.app, ["boxes", "learner-1"])

        assert result.exit_code == 0
        for box in range(1, 6):
            assert f"Box {box}" in result.stdout


class TestDrillCommand:
    def test_interactive_session(self, wired_cli):
        # Enter to reveal, then a score, for each of the two cards
        result = runner.invoke(
            study_cli.app,
            ["drill", "--learner", "learner-1", "--category", "Betriebsdienst"],
            input="\n5\n\n1\n",
        )

        assert result.exit_code == 0, result.stdout
        assert "Session complete" in result.stdout
        assert "Answered 2 cards, 1 correct" in result.stdout

        stats = wired_cli.get_stats("learner-1")
        assert stats.total_correct == 1
        assert stats.total_incorrect == 1


class TestImportQuestions:
    def test_imports_json(self, tmp_path, wired_cli):
        path = tmp_path / "questions.json"
        path.write_text(
            json.dumps(
                [
                    {
                        "id": "sig-100",
                        "category": "Signale",
                        "sub_category": "Zusatzsignale",
                        "regulation_category": "DS 301",
                        "text": "Was zeigt Zs 1?",
                        "answers": [{"text": "Ersatzsignal", "isCorrect": True}],
                    }
                ]
            ),
            encoding="utf-8",
        )

        result = runner.invoke(study_cli.app, ["import-questions", str(path)])

        assert result.exit_code == 0, result.stdout
        assert "Imported 1 questions" in result.stdout
        assert wired_cli.content.get_question_by_id("sig-100").sub_category == "Zusatzsignale"

    def test_rejects_non_list(self, tmp_path):
        path = tmp_path / "questions.json"
        path.write_text(json.dumps({"id": "x"}), encoding="utf-8")

        result = runner.invoke(study_cli.app, ["import-questions", str(path)])

        assert result.exit_code == 1
