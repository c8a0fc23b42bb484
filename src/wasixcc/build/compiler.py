"""Compiler Invocation Synthesizer.

This module builds the clang command lines for the compile stage.

Design:
    - A fixed baseline selects the WASIX target, sysroot and wasm features
    - Exceptions, PIC and debug info add flags according to the settings
    - Binary outputs compile each input separately into the scratch
      directory; the objects become linker inputs so the link stage can
      order them against the system libraries
    - Object outputs compile all inputs in one invocation
"""

import logging
from pathlib import Path
from typing import Dict, List

from ..config.build_config import DebugLevel
from .build_state import BuildState
from .compilation_executor import CommandExecutor

TARGET_FLAG = "--target=wasm32-wasi"

BASE_COMPILE_FLAGS = [
    "-c",
    "-matomics",
    "-mbulk-memory",
    "-mmutable-globals",
    "-pthread",
    "-mthread-model",
    "posix",
    "-fno-trapping-math",
    "-D_WASI_EMULATED_MMAN",
    "-D_WASI_EMULATED_SIGNAL",
    "-D_WASI_EMULATED_PROCESS_CLOCKS",
]


class WasmCompiler:
    """Synthesizes and runs clang invocations for one build."""

    def __init__(self, state: BuildState):
        self.state = state

    def get_compiler_path(self) -> Path:
        tool = "clang++" if self.state.cxx else "clang"
        return self.state.user_settings.llvm_location.get_tool_path(tool)

    def get_compile_flags(self, sysroot: Path) -> List[str]:
        """Get all flags shared by every compile command.

        Args:
            sysroot: Resolved sysroot directory

        Returns:
            Flags in the order clang receives them
        """
        user_settings = self.state.user_settings
        flags = ["--sysroot", str(sysroot), TARGET_FLAG]
        flags.extend(BASE_COMPILE_FLAGS)

        if user_settings.wasm_exceptions:
            flags.extend(["-fwasm-exceptions", "-mllvm", "--wasm-enable-sjlj"])
            if self.state.cxx:
                flags.extend(["-mllvm", "--wasm-enable-eh"])

        if self.state.module_kind.requires_pic or user_settings.pic:
            flags.extend(["-fPIC", "-ftls-model=global-dynamic", "-fvisibility=default"])
        else:
            flags.append("-ftls-model=local-exec")

        if self.state.build_settings.debug_level is not DebugLevel.NONE:
            flags.append("-g")

        flags.extend(self.state.args.compiler_args)
        return flags

    def get_compile_commands(self) -> List[List[str]]:
        """Build the compile commands.

        For binary outputs every input gets its own command writing
        <temp_dir>/<name>.<n>.o, and that object is appended to the linker
        inputs. Otherwise a single command compiles all inputs together.

        Raises:
            SysrootError: If the sysroot is invalid or missing
        """
        state = self.state
        sysroot = state.user_settings.ensure_sysroot_location()
        compiler = str(self.get_compiler_path())
        flags = self.get_compile_flags(sysroot)

        if not state.module_kind.is_binary:
            cmd = [compiler] + flags
            cmd.extend(str(source) for source in state.args.compiler_inputs)
            if state.args.output is not None:
                cmd.extend(["-o", str(state.args.output)])
            return [cmd]

        commands = []
        name_counter: Dict[str, int] = {}
        for source in state.args.compiler_inputs:
            input_name = source.name or "output"
            counter = name_counter.get(input_name, 0)
            name_counter[input_name] = counter + 1
            object_path = state.temp_dir / f"{input_name}.{counter}.o"

            commands.append([compiler] + flags + [str(source), "-o", str(object_path)])
            state.args.linker_inputs.append(object_path)

        return commands

    def compile(self, executor: CommandExecutor) -> None:
        """Run all compile commands, stopping at the first failure."""
        commands = self.get_compile_commands()
        logging.info(f"Compiling {len(self.state.args.compiler_inputs)} input(s)")
        for cmd in commands:
            executor.run(cmd)
