"""Link Invocation Synthesizer.

This module builds the single wasm-ld command line for the link stage.
wasm-ld is sensitive to argument order, so the command is assembled in a
fixed sequence:

    1. classified linker args
    2. wasm feature and memory flags
    3. LINKER_FLAGS
    4. exception handling backend flags
    5. TLS exports
    6. executables: stack/heap/data-end exports
    7. dynamic main: --whole-archive --export-all
    8. sysroot library paths
    9. executables: system libraries
   10. dynamic main: --no-whole-archive
   11. builtins
   12. PIC flags
   13. module kind tail
   14. linker inputs
   15. CRT startup object
   16. output
"""

import logging
from pathlib import Path
from typing import List

from ..config.build_config import ModuleKind
from ..errors import WasixccError
from .build_state import BuildState
from .compilation_executor import CommandExecutor

WASM_TARGET_LIB_DIR = "wasm32-wasi"

LINK_FEATURE_FLAGS = [
    "--extra-features=atomics",
    "--extra-features=bulk-memory",
    "--extra-features=mutable-globals",
    "--shared-memory",
    "--max-memory=4294967296",
    "--import-memory",
    "--export-dynamic",
    "--export=__wasm_call_ctors",
]

TLS_EXPORT_FLAGS = [
    "--export=__wasm_init_tls",
    "--export=__wasm_signal",
    "--export=__tls_size",
    "--export=__tls_align",
    "--export=__tls_base",
]

EXECUTABLE_EXPORT_FLAGS = [
    "--export-if-defined=__stack_pointer",
    "--export-if-defined=__heap_base",
    "--export-if-defined=__data_end",
]

SYSTEM_LIBRARIES = [
    "-lwasi-emulated-getpid",
    "-lwasi-emulated-mman",
    "-lwasi-emulated-process-clocks",
    "-lc",
    "-lresolv",
    "-lrt",
    "-lm",
    "-lpthread",
    "-lutil",
]

CXX_LIBRARIES = ["-lc++", "-lc++abi", "-lunwind"]

BUILTINS_LIBRARY = "-lclang_rt.builtins-wasm32"

PIC_FLAGS = [
    "--experimental-pic",
    "--export-if-defined=__wasm_apply_data_relocs",
    "--export-if-defined=__wasm_apply_tls_relocs",
]

STATIC_MAIN_STACK_SIZE = 8388608


class LinkerError(WasixccError):
    """Raised when a link command cannot be built."""

    pass


class WasmLinker:
    """Synthesizes and runs the wasm-ld invocation for one build."""

    def __init__(self, state: BuildState):
        self.state = state

    def get_linker_path(self) -> Path:
        return self.state.user_settings.llvm_location.get_tool_path("wasm-ld")

    def links_cxx_runtime(self) -> bool:
        """Whether the C++ runtime libraries are linked in.

        Besides C++ builds, a dynamic main built from C can carry the C++
        runtime when INCLUDE_CPP_SYMBOLS is set, so that C++ side modules
        can be loaded into it.
        """
        if self.state.cxx:
            return True
        return (
            self.state.module_kind is ModuleKind.DYNAMIC_MAIN
            and self.state.user_settings.include_cpp_symbols
        )

    def _module_kind_flags(self, module_kind: ModuleKind) -> List[str]:
        if module_kind is ModuleKind.STATIC_MAIN:
            return ["-z", f"stack-size={STATIC_MAIN_STACK_SIZE}"]
        if module_kind is ModuleKind.DYNAMIC_MAIN:
            return ["-pie", "-lcommon-tag-stubs"]
        if module_kind is ModuleKind.SHARED_LIBRARY:
            flags = ["-shared", "--no-entry", "--unresolved-symbols=import-dynamic"]
            if self.state.user_settings.link_symbolic:
                flags.append("-Bsymbolic")
            return flags
        raise LinkerError("Internal error: object files can't be linked")

    def get_link_command(self) -> List[str]:
        """Build the wasm-ld command.

        Raises:
            SysrootError: If the sysroot is invalid or missing
            LinkerError: If the module kind is not a binary
        """
        state = self.state
        user_settings = state.user_settings
        module_kind = state.module_kind

        sysroot = user_settings.ensure_sysroot_location()
        sysroot_lib = sysroot / "lib"
        sysroot_target_lib = sysroot_lib / WASM_TARGET_LIB_DIR

        cmd = [str(self.get_linker_path())]
        cmd.extend(state.args.linker_args)
        cmd.extend(LINK_FEATURE_FLAGS)
        cmd.extend(user_settings.extra_linker_flags)

        if user_settings.wasm_exceptions:
            cmd.extend(["-mllvm", "--wasm-enable-sjlj"])
            if state.cxx:
                cmd.extend(["-mllvm", "--wasm-enable-eh"])

        cmd.extend(TLS_EXPORT_FLAGS)

        if module_kind.is_executable:
            cmd.extend(EXECUTABLE_EXPORT_FLAGS)

        if module_kind is ModuleKind.DYNAMIC_MAIN:
            cmd.extend(["--whole-archive", "--export-all"])

        # Side modules may link against the sysroot libs even when we don't
        cmd.append(f"-L{sysroot_lib}")
        cmd.append(f"-L{sysroot_target_lib}")

        if module_kind.is_executable:
            cmd.extend(SYSTEM_LIBRARIES)
            if self.links_cxx_runtime():
                cmd.extend(CXX_LIBRARIES)

        if module_kind is ModuleKind.DYNAMIC_MAIN:
            cmd.append("--no-whole-archive")

        cmd.append(BUILTINS_LIBRARY)

        if module_kind.requires_pic:
            cmd.extend(PIC_FLAGS)

        cmd.extend(self._module_kind_flags(module_kind))

        cmd.extend(str(path) for path in state.args.linker_inputs)

        crt = "crt1.o" if module_kind.is_executable else "scrt1.o"
        cmd.append(str(sysroot_target_lib / crt))

        cmd.extend(["-o", str(state.output_path)])
        return cmd

    def link(self, executor: CommandExecutor) -> None:
        """Run the link command."""
        cmd = self.get_link_command()
        logging.info(f"Linking {self.state.module_kind.value} {self.state.output_path}")
        executor.run(cmd)
