"""Shared state for the stages of one build pipeline."""

from dataclasses import dataclass
from pathlib import Path

from ..config.build_config import BuildSettings, ModuleKind
from ..config.user_settings import UserSettings
from .arg_classifier import PreparedArgs


@dataclass
class BuildState:
    """Everything the compile, link and optimize stages need.

    Attributes:
        user_settings: User settings after classification
        build_settings: Settings derived from inline flags
        args: Classified command line; compiled objects are appended to
            args.linker_inputs by the compile stage
        cxx: Whether running in C++ mode
        temp_dir: Scratch directory for intermediate objects
    """

    user_settings: UserSettings
    build_settings: BuildSettings
    args: PreparedArgs
    cxx: bool
    temp_dir: Path

    @property
    def module_kind(self) -> ModuleKind:
        return self.user_settings.resolved_module_kind()

    @property
    def output_path(self) -> Path:
        """Get the output path, defaulting to a.out (binaries) or a.o (objects)."""
        if self.args.output is not None:
            return self.args.output
        if self.module_kind.is_binary:
            return Path("a.out")
        return Path("a.o")
