"""Argument Classifier.

This module splits a compiler-style command line into compiler-bound and
linker-bound pieces, and extracts build settings from inline flags.

Design:
    - Tokens are read through an explicit cursor (peek / next)
    - Inline flags update BuildSettings and, for a few of them, UserSettings
    - Module kind inference runs once after the scan, as an ordered list of
      fallback rules applied only while the kind is still unset:
        1. output file extension
        2. compiler argument scan (-shared, -c/-S/-E)
        3. linker argument scan (-shared, -pie)
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from ..config.build_config import (
    BuildSettings,
    DebugLevel,
    ModuleKind,
    OptLevel,
    deduce_module_kind,
)
from ..config.user_settings import UserSettings
from ..errors import WasixccError

# Compiler flags whose value is the following token
CLANG_FLAGS_WITH_ARGS = frozenset([
    "-MT",
    "-MF",
    "-MJ",
    "-MQ",
    "-D",
    "-U",
    "-o",
    "-x",
    "-Xpreprocessor",
    "-include",
    "-imacros",
    "-idirafter",
    "-iprefix",
    "-iwithprefix",
    "-iwithprefixbefore",
    "-isysroot",
    "-imultilib",
    "-A",
    "-isystem",
    "-iquote",
    "-install_name",
    "-compatibility_version",
    "-mllvm",
    "-mthread-model",
    "-current_version",
    "-I",
    "-l",
    "-L",
    "-include-pch",
    "-u",
    "-undefined",
    "-target",
    "-Xlinker",
    "-Xclang",
    "-z",
])

# Compiler flags (matched by prefix) that belong to the link stage
CLANG_FLAGS_TO_FORWARD_TO_WASM_LD = ("-L", "-l")

# We always specify values for these flags according to the build
# configuration, so they are discarded even when provided externally
CLANG_FLAGS_TO_DISCARD = frozenset(["-ftls-model", "--sysroot", "--target", "-mthread-model"])

# Linker flags whose value is the following token
WASM_LD_FLAGS_WITH_ARGS = frozenset(["-o", "-mllvm", "-L", "-l", "-m", "-O", "-y", "-z"])

OBJECT_EXTENSIONS = ("a", "o", "obj")

_OPT_LEVELS = {level.value: level for level in OptLevel}

_DEBUG_LEVELS = {
    "": DebugLevel.G2,
    "0": DebugLevel.G0,
    "1": DebugLevel.G1,
    "2": DebugLevel.G2,
    "3": DebugLevel.G3,
}


class ArgumentError(WasixccError):
    """Raised when the command line cannot be classified."""

    pass


class MalformedFlagError(ArgumentError):
    """Raised when a flag that needs a value is the last token."""

    pass


class InvalidArgumentError(ArgumentError):
    """Raised for an -O or -g flag with an unrecognized level."""

    pass


@dataclass
class PreparedArgs:
    """Classified command line.

    Attributes:
        compiler_args: Flags for clang, in command-line order
        linker_args: Flags for wasm-ld, in command-line order
        compiler_inputs: Source files to compile
        linker_inputs: Archives and objects to link
        output: Value of the last -o, if any
    """

    compiler_args: List[str] = field(default_factory=list)
    linker_args: List[str] = field(default_factory=list)
    compiler_inputs: List[Path] = field(default_factory=list)
    linker_inputs: List[Path] = field(default_factory=list)
    output: Optional[Path] = None
    # -o values in order of appearance, for module kind inference
    output_candidates: List[Path] = field(default_factory=list, repr=False)


class ArgumentCursor:
    """Cursor over a token sequence with one token of lookahead."""

    def __init__(self, tokens: Iterable[str]):
        self._tokens = list(tokens)
        self._pos = 0

    def peek(self) -> Optional[str]:
        """Get the next token without consuming it."""
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return None

    def next(self) -> Optional[str]:
        """Consume and return the next token, or None at the end."""
        token = self.peek()
        if token is not None:
            self._pos += 1
        return token

    def expect_value(self, flag: str) -> str:
        """Consume the value of a flag.

        Raises:
            MalformedFlagError: If there is no token left
        """
        value = self.next()
        if value is None:
            raise MalformedFlagError(f"Expected argument after {flag}")
        return value

    def __iter__(self):
        return self

    def __next__(self) -> str:
        token = self.next()
        if token is None:
            raise StopIteration
        return token


def update_build_settings_from_arg(
    arg: str, build_settings: BuildSettings, user_settings: UserSettings
) -> bool:
    """Update build and user settings from a single flag.

    Args:
        arg: The flag (starts with '-')
        build_settings: Settings for this invocation, updated in place
        user_settings: User settings, updated in place

    Returns:
        True if the flag should be kept in the classified output

    Raises:
        InvalidArgumentError: If an -O or -g level is not recognized
    """
    if arg.startswith("-O"):
        level = arg[2:]
        if level not in _OPT_LEVELS:
            raise InvalidArgumentError(f"Invalid argument: {arg}")
        build_settings.opt_level = _OPT_LEVELS[level]
        return True
    if arg.startswith("-g"):
        level = arg[2:]
        if level not in _DEBUG_LEVELS:
            raise InvalidArgumentError(f"Invalid argument: {arg}")
        build_settings.debug_level = _DEBUG_LEVELS[level]
        return True
    if arg == "-fwasm-exceptions":
        # Expanded into several compiler and linker flags later on
        user_settings.wasm_exceptions = True
        return False
    if arg == "-fno-wasm-exceptions":
        user_settings.wasm_exceptions = False
        return True
    if arg == "-fPIC":
        user_settings.pic = True
        return True
    if arg == "-fno-PIC":
        user_settings.pic = False
        return True
    if arg == "--wasm-opt":
        build_settings.use_wasm_opt = True
        return False
    if arg == "--no-wasm-opt":
        build_settings.use_wasm_opt = False
        return False
    return True


def _is_discarded(arg: str) -> bool:
    for flag in CLANG_FLAGS_TO_DISCARD:
        if arg.startswith(flag):
            rest = arg[len(flag):]
            if rest == "" or rest.startswith("="):
                return True
    return False


def _extension(path: PurePath) -> str:
    return path.suffix[1:] if path.suffix else ""


# Module kind fallback rules

def _kind_from_output(args: PreparedArgs) -> Optional[ModuleKind]:
    for output in args.output_candidates:
        kind = deduce_module_kind(_extension(output))
        if kind is not None:
            return kind
    return None


def _kind_from_compiler_args(args: PreparedArgs) -> Optional[ModuleKind]:
    for arg in args.compiler_args:
        if arg == "-shared":
            return ModuleKind.SHARED_LIBRARY
        if arg in ("-c", "-S", "-E"):
            return ModuleKind.OBJECT_FILE
    return None


def _kind_from_linker_args(args: PreparedArgs) -> Optional[ModuleKind]:
    for arg in args.linker_args:
        if arg == "-shared":
            return ModuleKind.SHARED_LIBRARY
        if arg == "-pie":
            return ModuleKind.DYNAMIC_MAIN
    return None


ModuleKindRule = Callable[[PreparedArgs], Optional[ModuleKind]]

COMPILER_MODULE_KIND_RULES: Tuple[ModuleKindRule, ...] = (
    _kind_from_output,
    _kind_from_compiler_args,
    _kind_from_linker_args,
)

LINKER_MODULE_KIND_RULES: Tuple[ModuleKindRule, ...] = (
    _kind_from_output,
    _kind_from_linker_args,
)


def infer_module_kind(
    args: PreparedArgs, user_settings: UserSettings, rules: Sequence[ModuleKindRule]
) -> None:
    """Fill in user_settings.module_kind from the first matching rule.

    An explicitly set module kind is never changed.
    """
    for rule in rules:
        if user_settings.module_kind is not None:
            return
        kind = rule(args)
        if kind is not None:
            logging.debug(f"Inferred module kind {kind.value} ({rule.__name__})")
            user_settings.module_kind = kind


def prepare_compiler_args(
    args: List[str], user_settings: UserSettings, cxx: bool
) -> Tuple[PreparedArgs, BuildSettings]:
    """Classify a compiler command line.

    Extra flags from the user settings surround the command line:
    COMPILER_FLAGS, COMPILER_FLAGS_C/_CXX, args, COMPILER_POST_FLAGS,
    COMPILER_POST_FLAGS_C/_CXX.

    Args:
        args: Command-line arguments (settings arguments already removed)
        user_settings: User settings, updated in place
        cxx: Whether running in C++ mode

    Returns:
        Tuple of (PreparedArgs, BuildSettings)

    Raises:
        MalformedFlagError: If a flag that takes a value is the last token
        InvalidArgumentError: If an -O or -g level is not recognized
    """
    result = PreparedArgs()
    build_settings = BuildSettings(
        opt_level=OptLevel.O0,
        debug_level=DebugLevel.G0,
        use_wasm_opt=True,
    )

    cursor = ArgumentCursor(
        user_settings.compiler_pre_flags(cxx) + list(args) + user_settings.compiler_post_flags(cxx)
    )

    for arg in cursor:
        if arg.startswith("-Wl,"):
            result.linker_args.extend(arg[len("-Wl,"):].split(","))
        elif arg == "-Xlinker":
            result.linker_args.append(cursor.expect_value(arg))
        elif arg == "-z":
            value = cursor.expect_value(arg)
            result.linker_args.extend([arg, value])
        elif arg == "-o":
            output = Path(cursor.expect_value(arg))
            result.output_candidates.append(output)
            result.output = output
        elif arg.startswith("-"):
            if not update_build_settings_from_arg(arg, build_settings, user_settings):
                continue

            # Read the value early so it's also discarded with its flag
            value = cursor.expect_value(arg) if arg in CLANG_FLAGS_WITH_ARGS else None

            if _is_discarded(arg):
                continue

            if arg.startswith(CLANG_FLAGS_TO_FORWARD_TO_WASM_LD):
                target = result.linker_args
            else:
                target = result.compiler_args

            target.append(arg)
            if value is not None:
                target.append(value)
        else:
            input_path = Path(arg)
            if _extension(input_path) in OBJECT_EXTENSIONS:
                result.linker_inputs.append(input_path)
            else:
                result.compiler_inputs.append(input_path)

    infer_module_kind(result, user_settings, COMPILER_MODULE_KIND_RULES)

    return result, build_settings


def prepare_linker_args(args: List[str], user_settings: UserSettings) -> PreparedArgs:
    """Classify a linker command line.

    Everything that is not a flag is a linker input. When the resolved
    module kind requires PIC, PIC is switched on in the user settings.

    Raises:
        MalformedFlagError: If a flag that takes a value is the last token
    """
    result = PreparedArgs()
    cursor = ArgumentCursor(args)

    for arg in cursor:
        if arg == "-o":
            output = Path(cursor.expect_value(arg))
            result.output_candidates.append(output)
            result.output = output
        elif arg.startswith("-"):
            result.linker_args.append(arg)
            if arg in WASM_LD_FLAGS_WITH_ARGS:
                result.linker_args.append(cursor.expect_value(arg))
        else:
            result.linker_inputs.append(Path(arg))

    infer_module_kind(result, user_settings, LINKER_MODULE_KIND_RULES)

    if user_settings.resolved_module_kind().requires_pic:
        user_settings.pic = True

    return result
