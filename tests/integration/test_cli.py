"""
Integration tests for the drover CLI.

Runs commands in-process with Click's CliRunner against plan files
written to a temporary project directory.
"""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from drover.cli import cli

pytestmark = pytest.mark.integration

PLAN = '''\
import os

from drover import Node

A_VALUE = int(os.environ.get("PLAN_A", "1"))


def add_one(A):
    return A + 1


def always_fails():
    print("about to fail")
    raise RuntimeError("C is broken")


def uses_c(C):
    return C


plan = [
    Node.import_object("A", A_VALUE),
    Node.target("B", add_one, ["A"]),
]

broken = [
    Node.target("C", always_fails, retries=1),
    Node.target("D", uses_c, ["C"]),
]
'''


@pytest.fixture
def project(tmp_path: Path, monkeypatch) -> Path:
    """Initialized drover project containing plan.py."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / "plan.py").write_text(PLAN)
    result = CliRunner().invoke(cli, ["init", "-n"])
    assert result.exit_code == 0, result.output
    return tmp_path


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestMake:
    def test_build_and_rebuild(self, project, runner, monkeypatch):
        result = runner.invoke(cli, ["make", "plan.py"])
        assert result.exit_code == 0, result.output
        assert "1 built" in result.output

        result = runner.invoke(cli, ["make", "plan.py"])
        assert result.exit_code == 0
        assert "0 built, 1 up to date" in result.output

        monkeypatch.setenv("PLAN_A", "5")
        result = runner.invoke(cli, ["outdated", "plan.py"])
        assert "1 outdated target(s):\n  B" in result.output

        runner.invoke(cli, ["make", "plan.py"])
        result = runner.invoke(cli, ["show", "B", "--value"])
        assert result.exit_code == 0
        assert result.output.strip().endswith("6")

    def test_failure_exit_code(self, project, runner):
        result = runner.invoke(cli, ["make", "plan.py:broken"])
        assert result.exit_code == 1
        assert "upstream failure" in result.output

        result = runner.invoke(cli, ["show", "C", "--json"])
        data = json.loads(result.output)
        assert data["status"] == "failed"
        assert data["error"]["message"] == "C is broken"
        assert data["messages"] == ["about to fail"]
        assert data["timings"]["attempts"] == 2
        assert data["missing"] is True

    def test_malformed_plan_exit_code(self, project, runner):
        (project / "bad.py").write_text(
            "from drover import Node\n"
            "plan = [Node.import_object('a', 1), Node.import_object('a', 2)]\n"
        )
        result = runner.invoke(cli, ["make", "bad.py"])
        assert result.exit_code == 2
        assert "Duplicate" in result.output

    def test_missing_plan_attribute(self, project, runner):
        result = runner.invoke(cli, ["make", "plan.py:nothing"])
        assert result.exit_code == 2
        assert "no attribute 'nothing'" in result.output

    def test_quiet(self, project, runner):
        result = runner.invoke(cli, ["make", "plan.py", "--quiet"])
        assert result.exit_code == 0
        assert result.output == ""


class TestInspection:
    def test_progress(self, project, runner):
        runner.invoke(cli, ["make", "plan.py"])
        result = runner.invoke(cli, ["progress"])
        assert result.exit_code == 0
        assert "B" in result.output
        assert "done" in result.output

    def test_show_unknown_node(self, project, runner):
        result = runner.invoke(cli, ["show", "nope"])
        assert result.exit_code == 1
        assert "No metadata" in result.output

    def test_requires_init(self, tmp_path, runner, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(cli, ["progress"])
        assert result.exit_code == 1
        assert "drover init" in result.output


class TestClean:
    def test_clean_node(self, project, runner):
        runner.invoke(cli, ["make", "plan.py"])
        result = runner.invoke(cli, ["clean", "B"])
        assert result.exit_code == 0
        assert "Removed 1 node(s): B" in result.output

        result = runner.invoke(cli, ["outdated", "plan.py"])
        assert "1 outdated target(s):\n  B" in result.output

    def test_clean_all_asks_first(self, project, runner):
        runner.invoke(cli, ["make", "plan.py"])
        result = runner.invoke(cli, ["clean"], input="n\n")
        assert result.exit_code == 1

        result = runner.invoke(cli, ["clean", "--yes"])
        assert result.exit_code == 0
        assert "Removed" in result.output


class TestConfigCommand:
    def test_set_and_get(self, project, runner):
        result = runner.invoke(cli, ["config", "set", "execution.jobs", "2"])
        assert result.exit_code == 0
        assert "Set execution.jobs = 2" in result.output

        result = runner.invoke(cli, ["config", "get", "execution.jobs"])
        assert "execution.jobs: 2" in result.output

    def test_invalid_value(self, project, runner):
        result = runner.invoke(cli, ["config", "set", "execution.trigger", "sometimes"])
        assert result.exit_code == 1
        assert "Invalid value" in result.output

    def test_list(self, project, runner):
        result = runner.invoke(cli, ["config", "list"])
        assert "execution.keep_going" in result.output
