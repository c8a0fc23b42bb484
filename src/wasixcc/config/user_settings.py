"""User settings.

User settings are supplied through '-sKEY=VALUE' arguments or WASIXCC_KEY
environment variables, the inline form taking precedence. Some of them can
be overridden by compiler flags; e.g. '-fno-wasm-exceptions' takes priority
over '-sWASM_EXCEPTIONS=1'.

Example:
    wasixcc -sSYSROOT=/opt/sysroot -sCOMPILER_FLAGS=-Wall:-Werror main.c
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Mapping, Optional, Tuple

from ..errors import WasixccError
from ..packages.sysroot import ensure_sysroot, resolve_sysroot
from ..packages.toolchain import LlvmLocation
from .build_config import ModuleKind, resolve_module_kind

ENV_PREFIX = "WASIXCC_"

SETTING_NAMES = (
    "SYSROOT",
    "SYSROOT_PREFIX",
    "LLVM_LOCATION",
    "COMPILER_FLAGS",
    "COMPILER_POST_FLAGS",
    "COMPILER_FLAGS_C",
    "COMPILER_POST_FLAGS_C",
    "COMPILER_FLAGS_CXX",
    "COMPILER_POST_FLAGS_CXX",
    "LINKER_FLAGS",
    "INCLUDE_CPP_SYMBOLS",
    "RUN_WASM_OPT",
    "WASM_OPT_FLAGS",
    "WASM_OPT_SUPPRESS_DEFAULT",
    "WASM_OPT_PRESERVE_UNOPTIMIZED",
    "MODULE_KIND",
    "WASM_EXCEPTIONS",
    "PIC",
    "LINK_SYMBOLIC",
)

DEFAULT_SYSTEM_DIR = Path("/lib/wasixcc")


class UserSettingsError(WasixccError):
    """Raised when a user setting has an invalid value."""

    pass


def _default_home_subdir(name: str) -> Path:
    """Get ~/.wasixcc/<name>, or /lib/wasixcc/<name> without a home directory."""
    try:
        return Path.home() / ".wasixcc" / name
    except RuntimeError:
        return DEFAULT_SYSTEM_DIR / name


@dataclass
class UserSettings:
    """Settings provided by the user for one tool invocation.

    Field comments name the setting key.
    """

    sysroot_location: Optional[Path] = None  # SYSROOT
    sysroot_prefix: Path = field(default_factory=lambda: DEFAULT_SYSTEM_DIR / "sysroot")  # SYSROOT_PREFIX
    llvm_location: LlvmLocation = field(
        default_factory=lambda: LlvmLocation(DEFAULT_SYSTEM_DIR / "llvm")
    )  # LLVM_LOCATION
    extra_compiler_flags: List[str] = field(default_factory=list)  # COMPILER_FLAGS
    extra_compiler_post_flags: List[str] = field(default_factory=list)  # COMPILER_POST_FLAGS
    extra_compiler_flags_c: List[str] = field(default_factory=list)  # COMPILER_FLAGS_C
    extra_compiler_post_flags_c: List[str] = field(default_factory=list)  # COMPILER_POST_FLAGS_C
    extra_compiler_flags_cxx: List[str] = field(default_factory=list)  # COMPILER_FLAGS_CXX
    extra_compiler_post_flags_cxx: List[str] = field(default_factory=list)  # COMPILER_POST_FLAGS_CXX
    extra_linker_flags: List[str] = field(default_factory=list)  # LINKER_FLAGS
    include_cpp_symbols: bool = False  # INCLUDE_CPP_SYMBOLS
    run_wasm_opt: Optional[bool] = None  # RUN_WASM_OPT
    wasm_opt_flags: List[str] = field(default_factory=list)  # WASM_OPT_FLAGS
    wasm_opt_suppress_default: bool = False  # WASM_OPT_SUPPRESS_DEFAULT
    wasm_opt_preserve_unoptimized: bool = False  # WASM_OPT_PRESERVE_UNOPTIMIZED
    module_kind: Optional[ModuleKind] = None  # MODULE_KIND
    wasm_exceptions: bool = False  # WASM_EXCEPTIONS
    pic: bool = False  # PIC
    link_symbolic: bool = True  # LINK_SYMBOLIC

    def sysroot_location_path(self) -> Path:
        """Get the sysroot for the current configuration, without checking it exists."""
        return resolve_sysroot(
            self.sysroot_location, self.sysroot_prefix, self.wasm_exceptions, self.pic
        )

    def ensure_sysroot_location(self) -> Path:
        """Get the sysroot for the current configuration and check it exists."""
        return ensure_sysroot(
            self.sysroot_location, self.sysroot_prefix, self.wasm_exceptions, self.pic
        )

    def resolved_module_kind(self) -> ModuleKind:
        """Get the effective module kind (explicit, else inferred from PIC)."""
        return resolve_module_kind(self.module_kind, self.pic)

    def compiler_pre_flags(self, cxx: bool) -> List[str]:
        """Get extra flags placed before the command-line arguments."""
        language_flags = self.extra_compiler_flags_cxx if cxx else self.extra_compiler_flags_c
        return self.extra_compiler_flags + language_flags

    def compiler_post_flags(self, cxx: bool) -> List[str]:
        """Get extra flags placed after the command-line arguments."""
        language_flags = (
            self.extra_compiler_post_flags_cxx if cxx else self.extra_compiler_post_flags_c
        )
        return self.extra_compiler_post_flags + language_flags


def is_setting_arg(arg: str) -> bool:
    """Check whether arg is a '-sKEY=VALUE' setting with a known KEY.

    Clang flags such as '-std=c11' share the '-s' prefix and are not settings.
    """
    if not arg.startswith("-s"):
        return False
    name, sep, _ = arg[2:].partition("=")
    return bool(sep) and name in SETTING_NAMES


def separate_user_settings_args(args: List[str]) -> Tuple[List[str], List[str]]:
    """Split '-sKEY=VALUE' settings from tool arguments.

    Only keys in SETTING_NAMES are settings; other tokens pass through unchanged.

    Everything after a literal '--' is a tool argument; '--' tokens are dropped.

    Returns:
        Tuple of (settings_args, tool_args)
    """
    seen_dash_dash = False
    settings_args = []
    tool_args = []

    for arg in args:
        if arg == "--":
            seen_dash_dash = True
        elif seen_dash_dash:
            tool_args.append(arg)
        elif is_setting_arg(arg):
            settings_args.append(arg)
        else:
            tool_args.append(arg)

    return settings_args, tool_args


def read_string_list_user_setting(value: str) -> List[str]:
    """Parse a colon-separated list setting.

    '\\:' is a literal colon; any other backslash sequence is kept as-is.
    Items are trimmed and empty items dropped.

    Example:
        >>> read_string_list_user_setting("a:b\\\\:c: d ::")
        ['a', 'b:c', 'd']
    """
    result = []
    current: List[str] = []

    def push_current() -> None:
        item = "".join(current).strip()
        if item:
            result.append(item)
        current.clear()

    i = 0
    while i < len(value):
        ch = value[i]
        if ch == "\\":
            if i + 1 < len(value):
                following = value[i + 1]
                if following == ":":
                    current.append(":")
                else:
                    current.append("\\")
                    current.append(following)
                i += 2
                continue
            current.append("\\")
        elif ch == ":":
            push_current()
        else:
            current.append(ch)
        i += 1

    push_current()
    return result


def read_bool_user_setting(value: str) -> Optional[bool]:
    """Parse a boolean setting; returns None for unrecognized values."""
    lowered = value.lower()
    if lowered in ("1", "true", "yes"):
        return True
    if lowered in ("0", "false", "no"):
        return False
    return None


def try_get_user_setting_value(
    name: str, args: List[str], environ: Optional[Mapping[str, str]] = None
) -> Optional[str]:
    """Look up a setting in '-sNAME=' arguments, then in WASIXCC_NAME.

    Args:
        name: Setting key (e.g. 'SYSROOT')
        args: Settings arguments ('-sKEY=VALUE')
        environ: Environment mapping (defaults to os.environ)

    Returns:
        The raw setting value, or None when not set
    """
    prefix = f"-s{name}="
    for arg in args:
        if arg.startswith(prefix):
            return arg[len(prefix):]

    if environ is None:
        environ = os.environ
    return environ.get(f"{ENV_PREFIX}{name}")


class _SettingsReader:
    """Typed accessors over the settings sources."""

    def __init__(self, args: List[str], environ: Optional[Mapping[str, str]]):
        self.args = args
        self.environ = environ

    def raw(self, name: str) -> Optional[str]:
        return try_get_user_setting_value(name, self.args, self.environ)

    def path(self, name: str) -> Optional[Path]:
        value = self.raw(name)
        return Path(value) if value is not None else None

    def string_list(self, name: str) -> List[str]:
        value = self.raw(name)
        return read_string_list_user_setting(value) if value is not None else []

    def boolean(self, name: str) -> Optional[bool]:
        value = self.raw(name)
        if value is None:
            return None
        parsed = read_bool_user_setting(value)
        if parsed is None:
            raise UserSettingsError(f"Invalid value {value} for {name}")
        return parsed


def gather_user_settings(
    args: List[str], environ: Optional[Mapping[str, str]] = None
) -> UserSettings:
    """Build UserSettings from settings arguments and the environment.

    Args:
        args: Settings arguments ('-sKEY=VALUE')
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Populated UserSettings

    Raises:
        UserSettingsError: If a boolean setting has an invalid value
        InvalidModuleKindError: If MODULE_KIND is not recognized
    """
    reader = _SettingsReader(args, environ)

    llvm_path = reader.path("LLVM_LOCATION")
    if llvm_path is not None:
        llvm_location = LlvmLocation(llvm_path, user_provided=True)
    else:
        llvm_location = LlvmLocation(_default_home_subdir("llvm"))

    sysroot_prefix = reader.path("SYSROOT_PREFIX") or _default_home_subdir("sysroot")

    wasm_opt_flags = reader.string_list("WASM_OPT_FLAGS")
    run_wasm_opt = reader.boolean("RUN_WASM_OPT")
    if run_wasm_opt is None and wasm_opt_flags:
        # Extra wasm-opt flags imply running it
        run_wasm_opt = True

    module_kind_value = reader.raw("MODULE_KIND")
    module_kind = (
        ModuleKind.from_string(module_kind_value) if module_kind_value is not None else None
    )

    def flag(name: str, default: bool) -> bool:
        value = reader.boolean(name)
        return default if value is None else value

    return UserSettings(
        sysroot_location=reader.path("SYSROOT"),
        sysroot_prefix=sysroot_prefix,
        llvm_location=llvm_location,
        extra_compiler_flags=reader.string_list("COMPILER_FLAGS"),
        extra_compiler_post_flags=reader.string_list("COMPILER_POST_FLAGS"),
        extra_compiler_flags_c=reader.string_list("COMPILER_FLAGS_C"),
        extra_compiler_post_flags_c=reader.string_list("COMPILER_POST_FLAGS_C"),
        extra_compiler_flags_cxx=reader.string_list("COMPILER_FLAGS_CXX"),
        extra_compiler_post_flags_cxx=reader.string_list("COMPILER_POST_FLAGS_CXX"),
        extra_linker_flags=reader.string_list("LINKER_FLAGS"),
        include_cpp_symbols=flag("INCLUDE_CPP_SYMBOLS", False),
        run_wasm_opt=run_wasm_opt,
        wasm_opt_flags=wasm_opt_flags,
        wasm_opt_suppress_default=flag("WASM_OPT_SUPPRESS_DEFAULT", False),
        wasm_opt_preserve_unoptimized=flag("WASM_OPT_PRESERVE_UNOPTIMIZED", False),
        module_kind=module_kind,
        wasm_exceptions=flag("WASM_EXCEPTIONS", False),
        pic=flag("PIC", False),
        link_symbolic=flag("LINK_SYMBOLIC", True),
    )

