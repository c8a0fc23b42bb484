"""
Unit tests for the post-link optimizer stage.
"""

import tempfile
from pathlib import Path

import pytest

from wasixcc.build.arg_classifier import PreparedArgs
from wasixcc.build.build_state import BuildState
from wasixcc.build.compilation_executor import CommandError
from wasixcc.build.wasm_opt import (
    WASM_OPT_ENABLED_FEATURES,
    get_wasm_opt_command,
    run_wasm_opt,
    should_run_wasm_opt,
)
from wasixcc.config import BuildSettings, DebugLevel, OptLevel, UserSettings

FEATURES = [
    "--enable-threads",
    "--enable-mutable-globals",
    "--enable-bulk-memory",
    "--enable-bulk-memory-opt",
    "--enable-exception-handling",
]


def make_state(output, opt_level=OptLevel.O0, debug_level=DebugLevel.G0, **settings):
    return BuildState(
        user_settings=UserSettings(**settings),
        build_settings=BuildSettings(opt_level=opt_level, debug_level=debug_level),
        args=PreparedArgs(output=Path(output)),
        cxx=False,
        temp_dir=Path("."),
    )


class TestShouldRunWasmOpt:
    """Test suite for should_run_wasm_opt."""

    @pytest.mark.parametrize(
        "run_wasm_opt,use_wasm_opt,expected",
        [
            (True, False, True),
            (True, True, True),
            (False, True, False),
            (False, False, False),
            (None, True, True),
            (None, False, False),
        ],
    )
    def test_decision_table(self, run_wasm_opt, use_wasm_opt, expected):
        user_settings = UserSettings(run_wasm_opt=run_wasm_opt)
        build_settings = BuildSettings(use_wasm_opt=use_wasm_opt)

        assert should_run_wasm_opt(user_settings, build_settings) is expected


class TestWasmOptCommand:
    """Test suite for get_wasm_opt_command."""

    def test_default_without_exceptions(self):
        cmd = get_wasm_opt_command(make_state("out.wasm", opt_level=OptLevel.O2))

        assert cmd == ["wasm-opt", "--asyncify", "-O2", "--no-validation"] + FEATURES + [
            "out.wasm",
            "-o",
            "out.wasm",
        ]

    def test_default_with_exceptions(self):
        cmd = get_wasm_opt_command(make_state("out.wasm", wasm_exceptions=True))

        assert cmd[:3] == ["wasm-opt", "--emit-exnref", "--no-validation"]

    def test_o0_adds_no_opt_flag(self):
        cmd = get_wasm_opt_command(make_state("out.wasm", opt_level=OptLevel.O0))

        assert not any(flag.startswith("-O") for flag in cmd)

    def test_user_opt_level_suppresses_ours(self):
        cmd = get_wasm_opt_command(
            make_state("out.wasm", opt_level=OptLevel.O3, wasm_opt_flags=["-Oz", "--strip-debug"])
        )

        assert cmd[:4] == ["wasm-opt", "--asyncify", "-Oz", "--strip-debug"]
        assert "-O3" not in cmd

    def test_suppress_default_with_no_flags_skips(self):
        state = make_state("out.wasm", opt_level=OptLevel.O3, wasm_opt_suppress_default=True)

        assert get_wasm_opt_command(state) is None

    def test_suppress_default_keeps_user_flags(self):
        state = make_state(
            "out.wasm",
            opt_level=OptLevel.O3,
            wasm_opt_suppress_default=True,
            wasm_opt_flags=["--strip-debug"],
        )

        cmd = get_wasm_opt_command(state)

        assert cmd[:3] == ["wasm-opt", "--strip-debug", "--no-validation"]

    @pytest.mark.parametrize(
        "debug_level,has_g",
        [
            (DebugLevel.NONE, False),
            (DebugLevel.G0, False),
            (DebugLevel.G1, True),
            (DebugLevel.G3, True),
        ],
    )
    def test_debug_info(self, debug_level, has_g):
        cmd = get_wasm_opt_command(make_state("out.wasm", debug_level=debug_level))

        assert ("-g" in cmd) is has_g

    def test_none_and_g0_defaults_produce_same_command(self):
        # Compilation starts from G0 and link-only from NONE
        from_compile = get_wasm_opt_command(make_state("out.wasm", debug_level=DebugLevel.G0))
        from_link = get_wasm_opt_command(make_state("out.wasm", debug_level=DebugLevel.NONE))

        assert from_compile == from_link

    def test_enabled_features(self):
        assert WASM_OPT_ENABLED_FEATURES == FEATURES


class TestRunWasmOpt:
    """Test suite for run_wasm_opt."""

    def test_runs_in_place(self, executor):
        run_wasm_opt(make_state("out.wasm"), executor)

        assert executor.programs == ["wasm-opt"]
        assert executor.commands[0][-3:] == ["out.wasm", "-o", "out.wasm"]

    def test_skips_without_passes(self, executor):
        run_wasm_opt(make_state("out.wasm", wasm_opt_suppress_default=True), executor)

        assert executor.commands == []

    def test_preserved_copy_removed_on_success(self, tmp_path, executor, monkeypatch):
        (tmp_path / "tmp").mkdir()
        monkeypatch.setattr(tempfile, "tempdir", str(tmp_path / "tmp"))
        artifact = tmp_path / "out.wasm"
        artifact.write_bytes(b"\0asm")

        run_wasm_opt(make_state(artifact, wasm_opt_preserve_unoptimized=True), executor)

        assert list((tmp_path / "tmp").iterdir()) == []

    def test_preserved_copy_kept_on_failure(self, tmp_path, executor_factory, monkeypatch, capsys):
        (tmp_path / "tmp").mkdir()
        monkeypatch.setattr(tempfile, "tempdir", str(tmp_path / "tmp"))
        artifact = tmp_path / "out.wasm"
        artifact.write_bytes(b"\0asm")
        executor = executor_factory(fail_on="wasm-opt")

        with pytest.raises(CommandError):
            run_wasm_opt(make_state(artifact, wasm_opt_preserve_unoptimized=True), executor)

        preserved = list((tmp_path / "tmp").iterdir())
        assert len(preserved) == 1
        assert preserved[0].read_bytes() == b"\0asm"
        assert str(preserved[0]) in capsys.readouterr().err
