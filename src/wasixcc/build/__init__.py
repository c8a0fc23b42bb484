"""
Build system components for wasixcc.

This module provides the build pipeline including:
- Command-line classification (compiler vs. linker arguments)
- Compilation (clang/clang++)
- Linking (wasm-ld)
- Post-link optimization (wasm-opt)
- Build orchestration
"""

from .arg_classifier import (
    ArgumentCursor,
    ArgumentError,
    InvalidArgumentError,
    MalformedFlagError,
    PreparedArgs,
    prepare_compiler_args,
    prepare_linker_args,
    update_build_settings_from_arg,
)
from .build_state import BuildState
from .compilation_executor import CommandError, CommandExecutor
from .compiler import WasmCompiler
from .linker import LinkerError, WasmLinker
from .orchestrator import (
    BuildOrchestratorError,
    link_only,
    run_compiler,
    run_passthrough_tool,
)
from .wasm_opt import get_wasm_opt_command, run_wasm_opt, should_run_wasm_opt

__all__ = [
    'ArgumentCursor',
    'ArgumentError',
    'InvalidArgumentError',
    'MalformedFlagError',
    'PreparedArgs',
    'prepare_compiler_args',
    'prepare_linker_args',
    'update_build_settings_from_arg',
    'BuildState',
    'CommandError',
    'CommandExecutor',
    'WasmCompiler',
    'LinkerError',
    'WasmLinker',
    'BuildOrchestratorError',
    'link_only',
    'run_compiler',
    'run_passthrough_tool',
    'get_wasm_opt_command',
    'run_wasm_opt',
    'should_run_wasm_opt',
]
