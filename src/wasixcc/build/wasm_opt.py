"""Post-link optimizer.

Decides whether wasm-opt runs on the linked artifact and builds its
command line. wasm-opt rewrites the artifact in place.
"""

import logging
import shutil
import sys
import tempfile
from pathlib import Path
from typing import List, Optional

from ..config.build_config import BuildSettings, OptLevel
from ..config.user_settings import UserSettings
from .build_state import BuildState
from .compilation_executor import CommandError, CommandExecutor

WASM_OPT = "wasm-opt"

WASM_OPT_ENABLED_FEATURES = [
    "--enable-threads",
    "--enable-mutable-globals",
    "--enable-bulk-memory",
    "--enable-bulk-memory-opt",
    "--enable-exception-handling",
]


def should_run_wasm_opt(user_settings: UserSettings, build_settings: BuildSettings) -> bool:
    """Decide whether to run wasm-opt.

    An explicit RUN_WASM_OPT always wins; without one, the inline
    --wasm-opt/--no-wasm-opt flags decide.
    """
    if user_settings.run_wasm_opt is not None:
        return user_settings.run_wasm_opt
    return build_settings.use_wasm_opt


def get_wasm_opt_command(state: BuildState) -> Optional[List[str]]:
    """Build the wasm-opt command.

    Returns:
        The command, or None when no pass would run
    """
    user_settings = state.user_settings
    passes: List[str] = []

    if not user_settings.wasm_opt_suppress_default:
        if user_settings.wasm_exceptions:
            passes.append("--emit-exnref")
        else:
            # Needed for fork and setjmp/longjmp
            passes.append("--asyncify")

        has_user_opt_level = any(flag.startswith("-O") for flag in user_settings.wasm_opt_flags)
        opt_level = state.build_settings.opt_level
        if not has_user_opt_level and opt_level is not OptLevel.O0:
            passes.append(opt_level.flag)

    passes.extend(user_settings.wasm_opt_flags)

    if not passes:
        return None

    cmd = [WASM_OPT] + passes

    if state.build_settings.debug_level.emits_debug_info:
        cmd.append("-g")

    # Validation already happened in the linker
    cmd.append("--no-validation")
    cmd.extend(WASM_OPT_ENABLED_FEATURES)

    output = str(state.output_path)
    cmd.extend([output, "-o", output])
    return cmd


def _preserve_copy(artifact: Path) -> Path:
    handle, copy_name = tempfile.mkstemp(prefix=f"{artifact.name}.", suffix=".unoptimized")
    with open(handle, "wb") as copy_file, open(artifact, "rb") as source:
        shutil.copyfileobj(source, copy_file)
    return Path(copy_name)


def run_wasm_opt(state: BuildState, executor: CommandExecutor) -> None:
    """Run wasm-opt in place on the build output.

    With WASM_OPT_PRESERVE_UNOPTIMIZED, the unoptimized artifact is copied
    to a temporary file first; the copy is kept only when wasm-opt fails.
    """
    cmd = get_wasm_opt_command(state)
    if cmd is None:
        logging.info("Skipping wasm-opt as no passes were specified or needed")
        return

    preserved: Optional[Path] = None
    if state.user_settings.wasm_opt_preserve_unoptimized:
        preserved = _preserve_copy(state.output_path)
        logging.debug(f"Saved unoptimized artifact to {preserved}")

    try:
        executor.run(cmd)
    except CommandError:
        if preserved is not None:
            logging.error(f"wasm-opt failed; unoptimized artifact preserved at {preserved}")
            print(f"Unoptimized artifact preserved at: {preserved}", file=sys.stderr)
        raise

    if preserved is not None:
        preserved.unlink()
