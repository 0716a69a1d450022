import subprocess

import pytest

from rosadr.errors import ExecutionError


class FakeRunner:
    """Scripted stand-in for CommandRunner that records every command."""

    def __init__(self):
        self.calls = []
        self.rules = []

    def on(self, *fragments, stdout="", stderr="", returncode=0):
        self.rules.append((fragments, stdout, stderr, returncode))
        return self

    def run(self, cmd, check=True):
        self.calls.append(list(cmd))
        joined = " ".join(cmd)

        stdout, stderr, returncode = "", "", 0
        for fragments, rule_stdout, rule_stderr, rule_returncode in reversed(self.rules):
            if all(fragment in joined for fragment in fragments):
                stdout, stderr, returncode = rule_stdout, rule_stderr, rule_returncode
                break

        if returncode != 0 and check:
            raise ExecutionError(cmd, returncode, stderr)
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr=stderr)

    def run_shell(self, script, check=True):
        return self.run(["bash", "-c", script], check=check)

    @property
    def commands(self):
        return [" ".join(cmd) for cmd in self.calls]

    def matching(self, fragment):
        return [command for command in self.commands if fragment in command]

    def index_of(self, fragment):
        for index, command in enumerate(self.commands):
            if fragment in command:
                return index
        raise AssertionError(f"No command containing {fragment!r} was run")


@pytest.fixture
def make_runner():
    return FakeRunner


@pytest.fixture
def fake_runner():
    return FakeRunner()
