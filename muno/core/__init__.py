"""Core domain types: results, exit codes, settings, workspace detection."""

from .errors import ErrorCode
from .result import Err, Ok, Result, is_err, is_ok
from .settings import Settings, SettingsError, load_settings, load_settings_or_default
from .workspace import Workspace, WorkspaceError, detect_workspace

__all__ = [
    # errors
    "ErrorCode",
    # result
    "Err",
    "Ok",
    "Result",
    "is_err",
    "is_ok",
    # settings
    "Settings",
    "SettingsError",
    "load_settings",
    "load_settings_or_default",
    # workspace
    "Workspace",
    "WorkspaceError",
    "detect_workspace",
]
