"""
Configuration adapters.
"""

from .environment import EnvironmentConfigProvider
from .file_provider import FileConfigProvider, build_app_config


__all__ = ["EnvironmentConfigProvider", "FileConfigProvider", "build_app_config"]
