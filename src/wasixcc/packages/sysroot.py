"""Sysroot selection.

Three sysroot flavors are installed side by side under a common prefix:

    <prefix>/sysroot         no exceptions, no PIC
    <prefix>/sysroot-eh      wasm exceptions
    <prefix>/sysroot-ehpic   wasm exceptions and PIC

PIC without exceptions has no sysroot and is rejected. An explicit SYSROOT
always wins over the prefix.
"""

from pathlib import Path
from typing import Optional

from ..errors import WasixccError


class SysrootError(WasixccError):
    """Raised when a sysroot cannot be resolved."""

    pass


class InvalidSysrootConfigurationError(SysrootError):
    """Raised for a PIC build without wasm exceptions."""

    pass


class SysrootNotFoundError(SysrootError):
    """Raised when the resolved sysroot directory does not exist."""

    pass


def resolve_sysroot(
    sysroot_location: Optional[Path],
    sysroot_prefix: Path,
    wasm_exceptions: bool,
    pic: bool,
) -> Path:
    """Resolve the sysroot path for a build configuration.

    Args:
        sysroot_location: Explicit sysroot, used as-is when set
        sysroot_prefix: Directory holding the sysroot flavors
        wasm_exceptions: Whether wasm exception handling is enabled
        pic: Whether position-independent code is enabled

    Returns:
        Path to the sysroot (existence is not checked)

    Raises:
        InvalidSysrootConfigurationError: If PIC is requested without exceptions
    """
    if sysroot_location is not None:
        return Path(sysroot_location)

    if wasm_exceptions and pic:
        return sysroot_prefix / "sysroot-ehpic"
    if wasm_exceptions:
        return sysroot_prefix / "sysroot-eh"
    if pic:
        raise InvalidSysrootConfigurationError(
            "PIC without wasm exceptions is not a valid build configuration"
        )
    return sysroot_prefix / "sysroot"


def ensure_sysroot(
    sysroot_location: Optional[Path],
    sysroot_prefix: Path,
    wasm_exceptions: bool,
    pic: bool,
) -> Path:
    """Resolve the sysroot and check that it exists.

    Raises:
        InvalidSysrootConfigurationError: If PIC is requested without exceptions
        SysrootNotFoundError: If the resolved directory does not exist
    """
    sysroot = resolve_sysroot(sysroot_location, sysroot_prefix, wasm_exceptions, pic)
    if not sysroot.is_dir():
        raise SysrootNotFoundError(f"sysroot does not exist: {sysroot}")
    return sysroot
