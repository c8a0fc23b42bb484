"""Configuration for wasixcc builds."""

from .build_config import (
    BuildSettings,
    DebugLevel,
    InvalidModuleKindError,
    ModuleKind,
    OptLevel,
    deduce_module_kind,
    resolve_module_kind,
)
from .user_settings import UserSettings, UserSettingsError, gather_user_settings

__all__ = [
    "BuildSettings",
    "DebugLevel",
    "InvalidModuleKindError",
    "ModuleKind",
    "OptLevel",
    "deduce_module_kind",
    "resolve_module_kind",
    "UserSettings",
    "UserSettingsError",
    "gather_user_settings",
]
