"""
Command-line interface for wasixcc.

This module provides two kinds of entry points:
- `tool_main`, installed as wasixcc, wasixcxx, wasixld, wasixar, ... and
  dispatching on the name it was invoked with
- `env_main`, the `wasixccenv` tool for managing sysroots and LLVM
"""

import argparse
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from wasixcc import __version__
from wasixcc.build import link_only, run_compiler, run_passthrough_tool
from wasixcc.cli_utils import (
    CommandNameError,
    ErrorFormatter,
    debug_enabled,
    get_command_name,
    setup_logging,
)
from wasixcc.config import gather_user_settings
from wasixcc.config.user_settings import separate_user_settings_args
from wasixcc.errors import WasixccError
from wasixcc.packages.downloader import TagSpec
from wasixcc.packages.installer import download_llvm, download_sysroot, install_executables

CXX_COMMANDS = ("++", "cc++", "cxx")

PASSTHROUGH_COMMANDS = ("ar", "nm", "ranlib")

HELP_CONFIG = """\
Configuration options can be provided on the command line using the
'-s' flag, or using environment variables prefixed with 'WASIXCC_'.
The following configuration options are available:
  SYSROOT=<PATH>           Set the sysroot location
  SYSROOT_PREFIX=<PREFIX>  Set the sysroot prefix, which is expected to
                           contain 3 subdirectories: 'sysroot',
                           'sysroot-eh', and 'sysroot-ehpic'.
  LLVM_LOCATION=<PATH>     Set the location of the LLVM installation. If
                           this option is left out and no LLVM is found in
                           the default location, LLVM binaries will be
                           invoked with a -21 version suffix (e.g. clang-21).
  COMPILER_FLAGS=<FLAGS>   Extra flags to pass to the compiler, separated
                           by colons (':')
  COMPILER_POST_FLAGS=<FLAGS>
                           Extra flags placed after the command-line
                           arguments of the compiler
  COMPILER_FLAGS_C, COMPILER_POST_FLAGS_C,
  COMPILER_FLAGS_CXX, COMPILER_POST_FLAGS_CXX
                           Same as above, for C or C++ builds only
  LINKER_FLAGS=<FLAGS>     Extra flags to pass to the linker, separated
                           by colons (':')
  INCLUDE_CPP_SYMBOLS=<BOOL>
                           Link the C++ runtime into dynamic main modules
                           built from C, so C++ side modules can be loaded
  RUN_WASM_OPT=<BOOL>      Whether to run `wasm-opt` on the output of the
                           linker. If this setting is left out, the
                           --wasm-opt/--no-wasm-opt compiler flags decide.
                           If no flags are found, `wasm-opt` is run.
  WASM_OPT_FLAGS=<FLAGS>   Extra flags to pass to `wasm-opt`, separated by
                           colons (':'). A non-empty list implies
                           `RUN_WASM_OPT=yes` unless an explicit value is
                           provided for `RUN_WASM_OPT`.
  WASM_OPT_SUPPRESS_DEFAULT=<BOOL>
                           Whether to suppress the default wasm-opt flags:
                           * `-O*`, from the `-O` flag passed to the compiler
                           * `--emit-exnref` for modules with exception
                             handling enabled
                           * `--asyncify` for modules without exception
                             handling enabled, required for forks and
                             setjmp/longjmp to work
  WASM_OPT_PRESERVE_UNOPTIMIZED=<BOOL>
                           Keep a copy of the unoptimized module when
                           `wasm-opt` fails
  MODULE_KIND=<KIND>       The kind of module to generate. This can be
                           guessed most of the time from compiler/linker
                           flags. Valid values are:
                           * static-main: An executable main module with no
                             dynamic linking capability
                           * dynamic-main: A main module capable of loading
                             dynamically-linked side modules at runtime
                           * shared-library: A dynamically-linked side module
                             which can be loaded by a dynamic main
                           * object-file: An object file
  WASM_EXCEPTIONS=<BOOL>   Whether to enable WebAssembly exception handling
                           support. Deduced from -fwasm-exceptions and
                           -fno-wasm-exceptions when passed to the compiler.
  PIC=<BOOL>               Whether to enable position-independent code,
                           required for dynamic linking. Enabled for
                           dynamic-main and shared-library modules, or when
                           -fPIC is passed to the compiler.
  LINK_SYMBOLIC=<BOOL>     Whether to link shared libraries with -Bsymbolic
                           (default: yes)

Arguments after a literal '--' are never treated as settings.
"""


@dataclass
class ToolArgs:
    """Arguments for one tool invocation."""

    command: str
    settings_args: List[str] = field(default_factory=list)
    tool_args: List[str] = field(default_factory=list)


def run_tool(tool_args: ToolArgs) -> None:
    """Dispatch a tool invocation to the build pipeline.

    Raises:
        CommandNameError: If the command is not a known tool
    """
    user_settings = gather_user_settings(tool_args.settings_args)
    command = tool_args.command

    if command == "cc":
        run_compiler(tool_args.tool_args, user_settings, cxx=False)
    elif command in CXX_COMMANDS:
        run_compiler(tool_args.tool_args, user_settings, cxx=True)
    elif command == "ld":
        link_only(tool_args.tool_args, user_settings)
    elif command in PASSTHROUGH_COMMANDS:
        run_passthrough_tool(f"llvm-{command}", tool_args.tool_args, user_settings)
    else:
        raise CommandNameError(f"Unknown command {command}")


def tool_main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the wasix<cmd> tools."""
    setup_logging()
    argv = list(sys.argv if argv is None else argv)

    try:
        command = get_command_name(argv[0])
        settings_args, tool_args = separate_user_settings_args(argv[1:])
        logging.info(f"Running {command} with settings {settings_args}")
        run_tool(ToolArgs(command=command, settings_args=settings_args, tool_args=tool_args))
    except WasixccError as e:
        ErrorFormatter.handle_wasixcc_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, verbose=debug_enabled())


def _settings_args(values: Optional[List[str]]) -> List[str]:
    return [f"-s{value}" for value in values or []]


def env_main(argv: Optional[List[str]] = None) -> None:
    """wasixccenv - manage the wasixcc toolchain."""
    setup_logging()

    parser = argparse.ArgumentParser(
        prog="wasixccenv",
        description="Manage the WASIX sysroots and LLVM toolchain used by wasixcc",
    )
    parser.add_argument(
        "-s",
        dest="settings",
        action="append",
        metavar="KEY=VALUE",
        help="Set a configuration value (see 'wasixccenv help-config')",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    install_parser = subparsers.add_parser(
        "install-executables",
        help="Install the wasix<cmd> executables into a directory",
    )
    install_parser.add_argument("path", type=Path, help="Directory to install into")

    sysroot_parser = subparsers.add_parser(
        "download-sysroot",
        help="Download the WASIX sysroots into the sysroot prefix",
    )
    sysroot_parser.add_argument(
        "tag",
        nargs="?",
        default="latest",
        help="Release tag (default: latest)",
    )

    llvm_parser = subparsers.add_parser(
        "download-llvm",
        help="Download the LLVM toolchain into the LLVM location",
    )
    llvm_parser.add_argument(
        "tag",
        nargs="?",
        default="latest",
        help="Release tag (default: latest)",
    )

    install_all_parser = subparsers.add_parser(
        "install-all",
        help="Download sysroots and LLVM, then install the executables",
    )
    install_all_parser.add_argument("path", type=Path, help="Directory to install into")
    install_all_parser.add_argument(
        "--sysroot-tag",
        default="latest",
        help="Sysroot release tag (default: latest)",
    )
    install_all_parser.add_argument(
        "--llvm-tag",
        default="latest",
        help="LLVM release tag (default: latest)",
    )

    subparsers.add_parser("print-sysroot", help="Print the sysroot wasixcc would use")
    subparsers.add_parser("version", help="Print version information")
    subparsers.add_parser("help-config", help="List the available configuration options")

    # Parse arguments
    parsed_args = parser.parse_args(argv)

    # If no command specified, show help
    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    if parsed_args.command == "version":
        print(f"wasixccenv version: {__version__}")
        return
    if parsed_args.command == "help-config":
        print(HELP_CONFIG, end="")
        return

    try:
        user_settings = gather_user_settings(_settings_args(parsed_args.settings))

        if parsed_args.command == "install-executables":
            install_executables(parsed_args.path)
        elif parsed_args.command == "download-sysroot":
            download_sysroot(TagSpec.parse(parsed_args.tag), user_settings)
        elif parsed_args.command == "download-llvm":
            download_llvm(TagSpec.parse(parsed_args.tag), user_settings)
        elif parsed_args.command == "install-all":
            sysroot_tag = TagSpec.parse(parsed_args.sysroot_tag)
            llvm_tag = TagSpec.parse(parsed_args.llvm_tag)
            download_sysroot(sysroot_tag, user_settings)
            download_llvm(llvm_tag, user_settings)
            install_executables(parsed_args.path)
            ErrorFormatter.print_success(f"wasixcc installed to {parsed_args.path}")
        elif parsed_args.command == "print-sysroot":
            print(user_settings.sysroot_location_path())
    except WasixccError as e:
        ErrorFormatter.handle_wasixcc_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, verbose=debug_enabled())


if __name__ == "__main__":
    env_main()
