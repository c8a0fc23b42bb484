"""
Unit tests for the argument classifier.

Tests splitting compiler-style command lines into compiler and linker
pieces and extracting build settings from inline flags.
"""

from pathlib import Path

import pytest

from wasixcc.build.arg_classifier import (
    CLANG_FLAGS_WITH_ARGS,
    ArgumentCursor,
    InvalidArgumentError,
    MalformedFlagError,
    prepare_compiler_args,
    prepare_linker_args,
    update_build_settings_from_arg,
)
from wasixcc.config import BuildSettings, DebugLevel, ModuleKind, OptLevel, UserSettings


class TestArgumentCursor:
    """Test suite for ArgumentCursor."""

    def test_peek_does_not_consume(self):
        cursor = ArgumentCursor(["a", "b"])

        assert cursor.peek() == "a"
        assert cursor.peek() == "a"
        assert cursor.next() == "a"
        assert cursor.next() == "b"
        assert cursor.next() is None
        assert cursor.peek() is None

    def test_expect_value(self):
        cursor = ArgumentCursor(["-o"])
        cursor.next()

        with pytest.raises(MalformedFlagError, match="Expected argument after -o"):
            cursor.expect_value("-o")

    def test_iteration(self):
        assert list(ArgumentCursor(["x", "y"])) == ["x", "y"]


class TestUpdateBuildSettings:
    """Test suite for update_build_settings_from_arg."""

    def setup_method(self):
        self.bs = BuildSettings(opt_level=OptLevel.O0, debug_level=DebugLevel.NONE)
        self.us = UserSettings()

    @pytest.mark.parametrize(
        "arg,level",
        [("-O0", OptLevel.O0), ("-O3", OptLevel.O3), ("-Os", OptLevel.Os), ("-Oz", OptLevel.Oz)],
    )
    def test_opt_levels(self, arg, level):
        assert update_build_settings_from_arg(arg, self.bs, self.us) is True
        assert self.bs.opt_level is level

    @pytest.mark.parametrize(
        "arg,level",
        [("-g", DebugLevel.G2), ("-g0", DebugLevel.G0), ("-g1", DebugLevel.G1), ("-g3", DebugLevel.G3)],
    )
    def test_debug_levels(self, arg, level):
        assert update_build_settings_from_arg(arg, self.bs, self.us) is True
        assert self.bs.debug_level is level

    @pytest.mark.parametrize("arg", ["-O5", "-Ofast", "-O", "-g4", "-gdwarf"])
    def test_invalid_levels(self, arg):
        with pytest.raises(InvalidArgumentError, match=f"Invalid argument: {arg}"):
            update_build_settings_from_arg(arg, self.bs, self.us)

    def test_wasm_exceptions_flags(self):
        assert update_build_settings_from_arg("-fwasm-exceptions", self.bs, self.us) is False
        assert self.us.wasm_exceptions is True

        assert update_build_settings_from_arg("-fno-wasm-exceptions", self.bs, self.us) is True
        assert self.us.wasm_exceptions is False

    def test_pic_flags(self):
        assert update_build_settings_from_arg("-fPIC", self.bs, self.us) is True
        assert self.us.pic is True

        assert update_build_settings_from_arg("-fno-PIC", self.bs, self.us) is True
        assert self.us.pic is False

    def test_wasm_opt_directives_are_not_retained(self):
        assert update_build_settings_from_arg("--no-wasm-opt", self.bs, self.us) is False
        assert self.bs.use_wasm_opt is False

        assert update_build_settings_from_arg("--wasm-opt", self.bs, self.us) is False
        assert self.bs.use_wasm_opt is True

    def test_other_flags_pass_through(self):
        assert update_build_settings_from_arg("-Wall", self.bs, self.us) is True
        assert self.bs == BuildSettings(opt_level=OptLevel.O0, debug_level=DebugLevel.NONE)


class TestPrepareCompilerArgs:
    """Test suite for prepare_compiler_args."""

    def test_full_command_line(self):
        us = UserSettings()
        args = (
            "-O2 -g0 -fwasm-exceptions --no-wasm-opt -Wl,-foo,bar -Xlinker baz "
            "-z zo -o out in.c lib.o"
        ).split()

        prepared, bs = prepare_compiler_args(args, us, cxx=False)

        assert bs.opt_level is OptLevel.O2
        assert bs.debug_level is DebugLevel.G0
        assert bs.use_wasm_opt is False
        assert us.wasm_exceptions is True
        assert prepared.compiler_args == ["-O2", "-g0"]
        assert prepared.linker_args == ["-foo", "bar", "baz", "-z", "zo"]
        assert prepared.output == Path("out")
        assert prepared.compiler_inputs == [Path("in.c")]
        assert prepared.linker_inputs == [Path("lib.o")]

    def test_wl_splits_on_commas(self):
        prepared, _ = prepare_compiler_args(["-Wl,-foo,bar"], UserSettings(), cxx=False)

        assert prepared.linker_args == ["-foo", "bar"]
        assert prepared.compiler_args == []

    def test_xlinker_forwards_one_token(self):
        prepared, _ = prepare_compiler_args(["-Xlinker", "baz"], UserSettings(), cxx=False)

        assert prepared.linker_args == ["baz"]
        assert prepared.compiler_args == []

    def test_z_keeps_flag_and_value(self):
        prepared, _ = prepare_compiler_args(["-z", "zo"], UserSettings(), cxx=False)

        assert prepared.linker_args == ["-z", "zo"]

    @pytest.mark.parametrize("flag", sorted(CLANG_FLAGS_WITH_ARGS))
    def test_trailing_flag_without_value_is_malformed(self, flag):
        with pytest.raises(MalformedFlagError, match=f"Expected argument after {flag}"):
            prepare_compiler_args(["main.c", flag], UserSettings(), cxx=False)

    def test_default_build_settings(self):
        _, bs = prepare_compiler_args(["main.c"], UserSettings(), cxx=False)

        # Compilation starts from G0, not NONE
        assert bs == BuildSettings(
            opt_level=OptLevel.O0, debug_level=DebugLevel.G0, use_wasm_opt=True
        )

    def test_no_wasm_opt_is_not_overridden_by_user_settings(self):
        us = UserSettings(run_wasm_opt=True)

        _, bs = prepare_compiler_args(["--no-wasm-opt", "main.c"], us, cxx=False)

        assert bs.use_wasm_opt is False

    def test_library_flags_go_to_linker(self):
        prepared, _ = prepare_compiler_args(
            ["-lfoo", "-L", "dir", "-Llibs", "-I", "inc", "main.c"], UserSettings(), cxx=False
        )

        assert prepared.linker_args == ["-lfoo", "-L", "dir", "-Llibs"]
        assert prepared.compiler_args == ["-I", "inc"]

    def test_discarded_flags(self):
        prepared, _ = prepare_compiler_args(
            [
                "--target=wasm32-unknown-unknown",
                "--sysroot=/other",
                "-ftls-model=initial-exec",
                "-mthread-model",
                "single",
                "-Wall",
                "main.c",
            ],
            UserSettings(),
            cxx=False,
        )

        assert prepared.compiler_args == ["-Wall"]
        assert prepared.compiler_inputs == [Path("main.c")]

    def test_flag_value_is_kept_with_flag(self):
        prepared, _ = prepare_compiler_args(
            ["-D", "X=1", "-include", "pre.h", "-x", "c", "main.c"], UserSettings(), cxx=False
        )

        assert prepared.compiler_args == ["-D", "X=1", "-include", "pre.h", "-x", "c"]
        assert prepared.compiler_inputs == [Path("main.c")]

    def test_input_classification(self):
        prepared, _ = prepare_compiler_args(
            ["a.c", "b.cpp", "libx.a", "y.o", "z.obj", "noext"], UserSettings(), cxx=True
        )

        assert prepared.compiler_inputs == [Path("a.c"), Path("b.cpp"), Path("noext")]
        assert prepared.linker_inputs == [Path("libx.a"), Path("y.o"), Path("z.obj")]

    def test_extra_flags_surround_command_line(self):
        us = UserSettings(
            extra_compiler_flags=["-DPRE"],
            extra_compiler_flags_cxx=["-DPRE_CXX"],
            extra_compiler_flags_c=["-DPRE_C"],
            extra_compiler_post_flags=["-DPOST"],
            extra_compiler_post_flags_cxx=["-DPOST_CXX"],
        )

        prepared, _ = prepare_compiler_args(["-DMID", "main.cpp"], us, cxx=True)

        assert prepared.compiler_args == ["-DPRE", "-DPRE_CXX", "-DMID", "-DPOST", "-DPOST_CXX"]

    def test_pic_flag_updates_user_settings(self):
        us = UserSettings()

        prepared, _ = prepare_compiler_args(["-fPIC", "main.c"], us, cxx=False)

        assert us.pic is True
        assert prepared.compiler_args == ["-fPIC"]
        assert us.module_kind is None
        assert us.resolved_module_kind() is ModuleKind.DYNAMIC_MAIN

    def test_idempotent_reclassification(self):
        """Forwarded -L/-l/-z args and compiler flags classify the same way twice.

        Values forwarded via -Wl, and -Xlinker are bare linker tokens (e.g. '-foo',
        'baz') and are not expected to survive a second compiler pass.
        """
        us = UserSettings()
        first, _ = prepare_compiler_args(
            ["-O2", "-g0", "-DFOO", "-I", "inc", "-lfoo", "-L", "dir", "-z", "zo", "main.c"],
            us,
            cxx=False,
        )

        compiler_again, _ = prepare_compiler_args(first.compiler_args, UserSettings(), cxx=False)
        linker_again, _ = prepare_compiler_args(first.linker_args, UserSettings(), cxx=False)

        assert compiler_again.compiler_args == first.compiler_args
        assert compiler_again.linker_args == []
        assert linker_again.linker_args == first.linker_args
        assert linker_again.compiler_args == []


class TestModuleKindInference:
    """Test suite for module kind inference during compiler classification."""

    @pytest.mark.parametrize(
        "output,kind",
        [
            ("x.o", ModuleKind.OBJECT_FILE),
            ("x.obj", ModuleKind.OBJECT_FILE),
            ("libx.so", ModuleKind.SHARED_LIBRARY),
            ("x.wasm", None),
            ("x", None),
        ],
    )
    def test_output_extension(self, output, kind):
        us = UserSettings()
        prepare_compiler_args(["-o", output, "main.c"], us, cxx=False)
        assert us.module_kind is kind

    @pytest.mark.parametrize("flag", ["-c", "-S", "-E"])
    def test_object_file_flags(self, flag):
        us = UserSettings()
        prepare_compiler_args([flag, "main.c"], us, cxx=False)
        assert us.module_kind is ModuleKind.OBJECT_FILE

    def test_shared_flag(self):
        us = UserSettings()
        prepare_compiler_args(["-shared", "main.c"], us, cxx=False)
        assert us.module_kind is ModuleKind.SHARED_LIBRARY

    def test_pie_in_linker_args(self):
        us = UserSettings()
        prepare_compiler_args(["-Wl,-pie", "main.c"], us, cxx=False)
        assert us.module_kind is ModuleKind.DYNAMIC_MAIN

    def test_output_extension_wins_over_flag_scan(self):
        us = UserSettings()
        prepare_compiler_args(["-c", "-o", "libx.so", "main.c"], us, cxx=False)
        assert us.module_kind is ModuleKind.SHARED_LIBRARY

    def test_compiler_scan_wins_over_linker_scan(self):
        us = UserSettings()
        prepare_compiler_args(["-Wl,-pie", "-c", "main.c"], us, cxx=False)
        assert us.module_kind is ModuleKind.OBJECT_FILE

    def test_explicit_module_kind_is_kept(self):
        us = UserSettings(module_kind=ModuleKind.STATIC_MAIN)
        prepare_compiler_args(["-c", "-o", "x.o", "main.c"], us, cxx=False)
        assert us.module_kind is ModuleKind.STATIC_MAIN

    def test_first_deducible_output_wins(self):
        us = UserSettings()
        prepared, _ = prepare_compiler_args(
            ["-o", "a.wasm", "-o", "b.o", "main.c"], us, cxx=False
        )
        assert us.module_kind is ModuleKind.OBJECT_FILE
        assert prepared.output == Path("b.o")

    def test_no_inference(self):
        us = UserSettings()
        prepare_compiler_args(["main.c"], us, cxx=False)
        assert us.module_kind is None
        assert us.resolved_module_kind() is ModuleKind.STATIC_MAIN


class TestPrepareLinkerArgs:
    """Test suite for prepare_linker_args."""

    def test_shared_library_link(self):
        us = UserSettings()

        prepared = prepare_linker_args("-o out.wasm -shared -m module mod.wasm".split(), us)

        assert prepared.output == Path("out.wasm")
        assert prepared.linker_args == ["-shared", "-m", "module"]
        assert prepared.linker_inputs == [Path("mod.wasm")]
        assert us.resolved_module_kind() is ModuleKind.SHARED_LIBRARY
        assert us.pic is True

    def test_pie_forces_pic(self):
        us = UserSettings()

        prepare_linker_args(["-pie", "a.o"], us)

        assert us.module_kind is ModuleKind.DYNAMIC_MAIN
        assert us.pic is True

    def test_static_main_keeps_pic_off(self):
        us = UserSettings()

        prepare_linker_args(["a.o", "b.a"], us)

        assert us.module_kind is None
        assert us.pic is False

    def test_output_extension_inference(self):
        us = UserSettings()
        prepare_linker_args(["-o", "libx.so", "a.o"], us)
        assert us.module_kind is ModuleKind.SHARED_LIBRARY

    def test_compiler_style_flags_are_linker_args(self):
        us = UserSettings()

        prepared = prepare_linker_args(["-c", "a.o"], us)

        assert prepared.linker_args == ["-c"]
        assert us.module_kind is None

    @pytest.mark.parametrize("flag", ["-o", "-mllvm", "-L", "-l", "-m", "-O", "-y", "-z"])
    def test_trailing_flag_without_value_is_malformed(self, flag):
        with pytest.raises(MalformedFlagError):
            prepare_linker_args(["a.o", flag], UserSettings())
