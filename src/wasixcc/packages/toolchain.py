"""LLVM toolchain location.

The toolchain is a patched LLVM installation laid out as <location>/bin/<tool>.
A location given by the user is always used verbatim; the default location
falls back to version-suffixed system binaries when it is not installed.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

# System LLVM major version used when the default toolchain is missing
LLVM_FALLBACK_VERSION = 21


@dataclass(frozen=True)
class LlvmLocation:
    """Where LLVM tools are looked up.

    Attributes:
        path: Installation directory (not its bin/ directory)
        user_provided: True when set through LLVM_LOCATION
    """

    path: Path
    user_provided: bool = False

    def get_tool_path(self, tool: str) -> Path:
        """Get the path used to invoke an LLVM tool.

        Args:
            tool: Tool name (e.g. 'clang', 'wasm-ld')

        Returns:
            Path to the tool, or a bare '<tool>-21' name to be found on PATH
        """
        bin_dir = self.path / "bin"

        # Never override a user-provided path
        if self.user_provided:
            return bin_dir / tool

        if bin_dir.exists():
            return bin_dir / tool

        logging.warning(
            f"No LLVM location specified and no LLVM installation found in "
            f"default path {self.path}. Using system LLVM version "
            f"{LLVM_FALLBACK_VERSION}. Output may be broken. "
            f"Use `wasixccenv download-llvm` to download a compatible version."
        )
        return Path(f"{tool}-{LLVM_FALLBACK_VERSION}")
