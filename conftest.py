"""
Pytest configuration for the wasixcc test suite.

Provides shared fixtures: a clean settings environment, a fake sysroot
prefix and a command executor that records commands instead of running them.
"""

import os
from pathlib import Path
from typing import List

import pytest

from wasixcc.build.compilation_executor import CommandError
from wasixcc.config import UserSettings
from wasixcc.packages.toolchain import LlvmLocation


class RecordingExecutor:
    """Executor double that records commands and optionally fails."""

    def __init__(self, fail_on: str = ""):
        self.commands: List[List[str]] = []
        self.fail_on = fail_on

    def run(self, cmd) -> None:
        argv = [str(part) for part in cmd]
        self.commands.append(argv)
        if self.fail_on and Path(argv[0]).name == self.fail_on:
            raise CommandError(f"Command failed with status: 1; the command was: {' '.join(argv)}")

    @property
    def programs(self) -> List[str]:
        return [Path(cmd[0]).name for cmd in self.commands]


@pytest.fixture(autouse=True)
def clean_wasixcc_env(monkeypatch):
    """Remove WASIXCC_* and GITHUB_TOKEN variables from the environment."""
    for name in list(os.environ):
        if name.startswith("WASIXCC_") or name == "GITHUB_TOKEN":
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def sysroot_prefix(tmp_path) -> Path:
    """A sysroot prefix holding the three sysroot flavors."""
    prefix = tmp_path / "sysroots"
    for flavor in ("sysroot", "sysroot-eh", "sysroot-ehpic"):
        (prefix / flavor / "lib" / "wasm32-wasi").mkdir(parents=True)
    return prefix


@pytest.fixture
def llvm_dir(tmp_path) -> Path:
    """An LLVM location with an (empty) bin directory."""
    location = tmp_path / "llvm"
    (location / "bin").mkdir(parents=True)
    return location


@pytest.fixture
def user_settings(sysroot_prefix, llvm_dir) -> UserSettings:
    """UserSettings pointing at the fake sysroot prefix and LLVM location."""
    return UserSettings(
        sysroot_prefix=sysroot_prefix,
        llvm_location=LlvmLocation(llvm_dir, user_provided=True),
    )


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def executor_factory():
    """Factory for executors failing on a given program name."""
    return RecordingExecutor
