"""Build configuration model.

This module defines the value types that describe a single build:
the kind of module being produced, the optimization and debug levels
requested on the command line, and the per-invocation build settings
derived from inline flags.

Design:
    - ModuleKind, OptLevel and DebugLevel are closed enums
    - Derived predicates live on the enum, not in scattered booleans
    - BuildSettings is rebuilt for every classification pass
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..errors import WasixccError


class InvalidModuleKindError(WasixccError, ValueError):
    """Raised when a module kind string is not recognized."""

    pass


class ModuleKind(Enum):
    """Structural role of the build output."""

    STATIC_MAIN = "static-main"
    DYNAMIC_MAIN = "dynamic-main"
    SHARED_LIBRARY = "shared-library"
    OBJECT_FILE = "object-file"

    @classmethod
    def from_string(cls, value: str) -> "ModuleKind":
        """Convert a MODULE_KIND setting value to a ModuleKind.

        Raises:
            InvalidModuleKindError: If the value is not a known module kind
        """
        try:
            return cls(value)
        except ValueError:
            raise InvalidModuleKindError(f"Unknown module kind: {value}")

    @property
    def requires_pic(self) -> bool:
        return self in (ModuleKind.DYNAMIC_MAIN, ModuleKind.SHARED_LIBRARY)

    @property
    def is_binary(self) -> bool:
        return self is not ModuleKind.OBJECT_FILE

    @property
    def is_executable(self) -> bool:
        return self in (ModuleKind.STATIC_MAIN, ModuleKind.DYNAMIC_MAIN)


class OptLevel(Enum):
    """Optimization level selected with -O<level>."""

    O0 = "0"
    O1 = "1"
    O2 = "2"
    O3 = "3"
    O4 = "4"
    Os = "s"
    Oz = "z"

    @property
    def flag(self) -> str:
        return f"-O{self.value}"


class DebugLevel(Enum):
    """Debug level selected with -g<level>.

    NONE and G0 both mean no debug info is kept downstream, but they are
    distinct starting states: the compiler always receives -g unless the
    level is NONE.
    """

    NONE = "none"
    G0 = "0"
    G1 = "1"
    G2 = "2"
    G3 = "3"

    @property
    def emits_debug_info(self) -> bool:
        return self not in (DebugLevel.NONE, DebugLevel.G0)


@dataclass
class BuildSettings:
    """Settings derived strictly from the flags of one invocation."""

    opt_level: OptLevel = OptLevel.O0
    debug_level: DebugLevel = DebugLevel.NONE
    use_wasm_opt: bool = True


def deduce_module_kind(extension: str) -> Optional[ModuleKind]:
    """Infer a module kind from an output file extension.

    Args:
        extension: Extension without the leading dot (e.g. "o", "so")

    Returns:
        The inferred ModuleKind, or None when the extension says nothing
    """
    if extension in ("o", "obj"):
        return ModuleKind.OBJECT_FILE
    if extension == "so":
        return ModuleKind.SHARED_LIBRARY
    return None


def resolve_module_kind(module_kind: Optional[ModuleKind], pic: bool) -> ModuleKind:
    """Resolve the effective module kind.

    An explicit kind always wins. Without one, PIC builds become dynamic
    mains; a static main never carries PIC.
    """
    if module_kind is not None:
        return module_kind
    if pic:
        return ModuleKind.DYNAMIC_MAIN
    return ModuleKind.STATIC_MAIN
