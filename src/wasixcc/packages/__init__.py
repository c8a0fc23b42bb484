"""Toolchain and sysroot management for wasixcc.

This module resolves where the LLVM toolchain and the WASIX sysroots live,
and downloads them on request.
"""

from .sysroot import (
    InvalidSysrootConfigurationError,
    SysrootError,
    SysrootNotFoundError,
    ensure_sysroot,
    resolve_sysroot,
)
from .toolchain import LLVM_FALLBACK_VERSION, LlvmLocation

__all__ = [
    "InvalidSysrootConfigurationError",
    "SysrootError",
    "SysrootNotFoundError",
    "ensure_sysroot",
    "resolve_sysroot",
    "LLVM_FALLBACK_VERSION",
    "LlvmLocation",
]
