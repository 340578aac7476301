"""Project description modules for kiln."""

from .project import ConfigurationError, Project, Target
from .project_config import (
    CONFIG_FILENAME,
    BootstrapSettings,
    ProjectConfig,
    ProjectConfigError,
    ProjectSettings,
)

__all__ = [
    "CONFIG_FILENAME",
    "BootstrapSettings",
    "ConfigurationError",
    "Project",
    "ProjectConfig",
    "ProjectConfigError",
    "ProjectSettings",
    "Target",
]
