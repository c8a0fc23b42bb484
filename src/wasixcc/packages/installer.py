"""Toolchain installation.

Downloads the WASIX sysroots and the patched LLVM toolchain from their
GitHub releases, and installs the wasix<cmd> tool names.
"""

import logging
import os
import platform
import shutil
import stat
import sys
import tempfile
from pathlib import Path
from typing import List, Optional

from ..config.user_settings import UserSettings
from ..errors import WasixccError
from .downloader import PackageDownloader, ReleaseAsset, TagSpec

SYSROOT_REPO = "wasix-org/wasix-libc"

LLVM_REPO = "wasix-org/llvm-project"

SYSROOT_ASSETS = ["sysroot.tar.gz", "sysroot-eh.tar.gz", "sysroot-ehpic.tar.gz"]

SYSROOT_ARCHIVE_DIR_PREFIX = "wasix-sysroot"

TOOL_COMMANDS = ["cc", "++", "cc++", "ar", "nm", "ranlib", "ld"]

TOOL_SCRIPT_NAME = "wasixcc"


class InstallError(WasixccError):
    """Raised when part of the toolchain cannot be installed."""

    pass


def get_llvm_asset_name(system: Optional[str] = None, machine: Optional[str] = None) -> str:
    """Get the LLVM release asset for a platform (defaults to the host).

    Raises:
        InstallError: If no LLVM build exists for the platform
    """
    system = system or platform.system()
    machine = (machine or platform.machine()).lower()

    os_name = {"Linux": "Linux", "Darwin": "MacOS"}.get(system)
    arch = {"x86_64": "x86_64", "amd64": "x86_64", "aarch64": "aarch64", "arm64": "aarch64"}.get(
        machine
    )
    if os_name is None or arch is None:
        raise InstallError(f"LLVM download for {machine} on {system} is not supported")

    return f"LLVM-{os_name}-{arch}.tar.gz"


def find_asset(assets: List[ReleaseAsset], name: str) -> ReleaseAsset:
    for asset in assets:
        if asset.name == name:
            return asset
    raise InstallError(f"Could not find asset '{name}' in release")


def unpack_sysroot_asset(
    asset: ReleaseAsset, sysroot_prefix: Path, downloader: PackageDownloader
) -> Path:
    """Download one sysroot archive and move it to <prefix>/sysroot<suffix>.

    The archive holds a single 'wasix-sysroot<suffix>' directory whose
    'sysroot' child is the actual sysroot. An existing sysroot is replaced.

    Returns:
        The installed sysroot directory
    """
    with tempfile.TemporaryDirectory(prefix="wasixcc-sysroot-") as work_dir:
        work_path = Path(work_dir)
        unpack_dir = work_path / "unpacked"
        downloader.download_and_extract(asset, work_path, unpack_dir)

        entries = list(unpack_dir.iterdir())
        if len(entries) != 1:
            names = sorted(entry.name for entry in entries)
            raise InstallError(
                f"Expected exactly one directory in unpacked asset, found {names}"
            )

        asset_dir = entries[0]
        if not asset_dir.name.startswith(SYSROOT_ARCHIVE_DIR_PREFIX):
            raise InstallError(
                f"Expected unpacked asset directory to start with "
                f"'{SYSROOT_ARCHIVE_DIR_PREFIX}', found {asset_dir.name}"
            )
        suffix = asset_dir.name[len(SYSROOT_ARCHIVE_DIR_PREFIX) :]

        sysroot_prefix.mkdir(parents=True, exist_ok=True)
        final_dir = sysroot_prefix / f"sysroot{suffix}"
        if final_dir.exists():
            shutil.rmtree(final_dir)

        # shutil.move falls back to copying across filesystems
        shutil.move(str(asset_dir / "sysroot"), str(final_dir))

    print(f"Downloaded sysroot asset '{asset.name}' to '{final_dir}'", file=sys.stderr)
    return final_dir


def download_sysroot(
    tag_spec: TagSpec,
    user_settings: UserSettings,
    downloader: Optional[PackageDownloader] = None,
) -> List[Path]:
    """Download all three sysroot flavors into the sysroot prefix.

    Returns:
        The installed sysroot directories
    """
    if user_settings.sysroot_location is not None:
        logging.warning("SYSROOT is ignored when downloading sysroot")

    downloader = downloader or PackageDownloader()
    assets = downloader.get_release_assets(SYSROOT_REPO, tag_spec)

    installed = []
    for asset_name in SYSROOT_ASSETS:
        asset = find_asset(assets, asset_name)
        installed.append(unpack_sysroot_asset(asset, user_settings.sysroot_prefix, downloader))
    return installed


def make_executables(bin_dir: Path) -> None:
    """Add the user and group execute bits to every file in bin_dir."""
    if not bin_dir.is_dir():
        raise InstallError(f"Failed to read bin directory {bin_dir}")

    for entry in bin_dir.iterdir():
        if entry.is_file() and not entry.is_symlink():
            mode = entry.stat().st_mode
            entry.chmod(mode | stat.S_IXUSR | stat.S_IXGRP)


def download_llvm(
    tag_spec: TagSpec,
    user_settings: UserSettings,
    downloader: Optional[PackageDownloader] = None,
) -> Path:
    """Download the LLVM toolchain into the LLVM location.

    Returns:
        The LLVM location
    """
    asset_name = get_llvm_asset_name()
    target_dir = user_settings.llvm_location.path

    try:
        target_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise InstallError(f"Failed to create LLVM directory at {target_dir}: {e}")

    downloader = downloader or PackageDownloader()
    assets = downloader.get_release_assets(LLVM_REPO, tag_spec)
    asset = find_asset(assets, asset_name)

    with tempfile.TemporaryDirectory(prefix="wasixcc-llvm-") as work_dir:
        downloader.download_and_extract(asset, Path(work_dir), target_dir)

    make_executables(target_dir / "bin")

    print(f"Downloaded LLVM asset '{asset.name}' to '{target_dir}'", file=sys.stderr)
    return target_dir


def find_tool_script() -> Path:
    """Locate the installed 'wasixcc' entry point script.

    Raises:
        InstallError: If the script cannot be found
    """
    sibling = Path(sys.argv[0]).resolve().parent / TOOL_SCRIPT_NAME
    if sibling.is_file():
        return sibling

    found = shutil.which(TOOL_SCRIPT_NAME)
    if found:
        return Path(found).resolve()

    raise InstallError(f"Failed to find the '{TOOL_SCRIPT_NAME}' executable")


def install_executables(path: Path, tool_script: Optional[Path] = None) -> List[Path]:
    """Create wasix<cmd> symlinks to the tool script in path.

    Existing files with those names are replaced.

    Returns:
        The created links
    """
    if os.name != "posix":
        raise InstallError("wasixcc only supports installation on unix systems at this time")

    tool_script = tool_script or find_tool_script()
    path = Path(path)

    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise InstallError(f"Failed to create directory at {path}: {e}")

    created = []
    for command in TOOL_COMMANDS:
        target = path / f"wasix{command}"

        try:
            if target.is_symlink() or target.exists():
                target.unlink()
            target.symlink_to(tool_script)
        except OSError as e:
            raise InstallError(f"Failed to create symlink at {target}: {e}")

        print(f"Created command {target}")
        created.append(target)

    return created
