"""Build Orchestrator.

Runs the compile, link and optimize stages for one tool invocation.

Design:
    - Stages run strictly in order; the first failure aborts the pipeline
    - Intermediate objects live in a scratch directory that is removed when
      the pipeline exits, whether it succeeded or not
    - Invocations without inputs (e.g. 'wasixcc -dumpmachine') are passed
      straight through to the underlying tool
"""

import logging
import tempfile
from pathlib import Path
from typing import List, Optional

from ..config.build_config import BuildSettings, DebugLevel, OptLevel
from ..config.user_settings import UserSettings
from ..errors import WasixccError
from .arg_classifier import prepare_compiler_args, prepare_linker_args
from .build_state import BuildState
from .compilation_executor import CommandExecutor
from .compiler import TARGET_FLAG, WasmCompiler
from .linker import WasmLinker
from .wasm_opt import run_wasm_opt, should_run_wasm_opt


class BuildOrchestratorError(WasixccError):
    """Raised when a build request cannot be carried out."""

    pass


def run_compiler(
    args: List[str],
    user_settings: UserSettings,
    cxx: bool,
    executor: Optional[CommandExecutor] = None,
) -> None:
    """Compile, and link and optimize when producing a binary.

    Args:
        args: Command-line arguments (settings arguments already removed)
        user_settings: User settings; updated by inline flags
        cxx: Whether running in C++ mode
        executor: Command executor (defaults to a CommandExecutor)
    """
    executor = executor or CommandExecutor()
    original_args = list(args)

    prepared, build_settings = prepare_compiler_args(args, user_settings, cxx)

    logging.info(f"Compiler settings: {user_settings}")

    if not prepared.compiler_inputs and not prepared.linker_inputs:
        tool = "clang++" if cxx else "clang"
        compiler = user_settings.llvm_location.get_tool_path(tool)
        executor.run([str(compiler)] + original_args + [TARGET_FLAG])
        return

    with tempfile.TemporaryDirectory(prefix="wasixcc-") as temp_dir:
        state = BuildState(
            user_settings=user_settings,
            build_settings=build_settings,
            args=prepared,
            cxx=cxx,
            temp_dir=Path(temp_dir),
        )

        WasmCompiler(state).compile(executor)

        if state.module_kind.is_binary:
            WasmLinker(state).link(executor)

            if should_run_wasm_opt(user_settings, build_settings):
                run_wasm_opt(state, executor)

    logging.info("Done")


def link_only(
    args: List[str],
    user_settings: UserSettings,
    executor: Optional[CommandExecutor] = None,
) -> None:
    """Link already-compiled inputs, then optimize when decided.

    Raises:
        BuildOrchestratorError: If the module kind is not a binary
    """
    executor = executor or CommandExecutor()
    original_args = list(args)

    prepared = prepare_linker_args(args, user_settings)

    module_kind = user_settings.resolved_module_kind()
    if not module_kind.is_binary:
        raise BuildOrchestratorError(
            f"Only binaries can be linked, current module kind is: {module_kind.value}"
        )

    logging.info(f"Linker settings: {user_settings}")

    if not prepared.linker_inputs:
        linker = user_settings.llvm_location.get_tool_path("wasm-ld")
        executor.run([str(linker)] + original_args)
        return

    build_settings = BuildSettings(
        opt_level=OptLevel.O0,
        debug_level=DebugLevel.NONE,
        use_wasm_opt=True,
    )

    state = BuildState(
        user_settings=user_settings,
        build_settings=build_settings,
        args=prepared,
        # TODO: detect C++ inputs so the C++ exception backend flag is passed when linking C++ objects
        cxx=False,
        # Not used for linking
        temp_dir=Path("."),
    )

    WasmLinker(state).link(executor)

    if should_run_wasm_opt(user_settings, build_settings):
        run_wasm_opt(state, executor)

    logging.info("Done")


def run_passthrough_tool(
    tool: str,
    args: List[str],
    user_settings: UserSettings,
    executor: Optional[CommandExecutor] = None,
) -> None:
    """Run an LLVM tool (e.g. llvm-ar) with the arguments unchanged."""
    executor = executor or CommandExecutor()
    tool_path = user_settings.llvm_location.get_tool_path(tool)
    executor.run([str(tool_path)] + list(args))
