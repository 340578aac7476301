"""CLI utility functions for kiln.

This module provides common utilities used across CLI commands including:
- Project description detection (kiln.ini)
- Compiler selection from flags and configuration
- Logging setup
- Error handling and formatting
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from kiln.build import BuildComponentFactory, ICompiler
from kiln.config import CONFIG_FILENAME, ProjectConfig, ProjectConfigError, ProjectSettings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_HANDLER_NAME = "kiln-console"


def setup_logging(verbose: bool = False) -> None:
    """Configure the root logger for command-line use.

    Args:
        verbose: Log at DEBUG instead of INFO
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger()
    logger.setLevel(level)

    # Calling twice (e.g. from tests) must not duplicate output
    for handler in list(logger.handlers):
        if handler.get_name() == _HANDLER_NAME:
            logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.set_name(_HANDLER_NAME)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(console_handler)


class ProjectDetector:
    """Handles project description lookup and target selection."""

    @staticmethod
    def find_config(project_dir: Path) -> ProjectConfig:
        """Load kiln.ini from a project directory.

        Raises:
            FileNotFoundError: If kiln.ini doesn't exist
            ProjectConfigError: If kiln.ini cannot be parsed
        """
        ini_path = project_dir / CONFIG_FILENAME
        if not ini_path.exists():
            raise FileNotFoundError(f"{CONFIG_FILENAME} not found in {project_dir}")
        return ProjectConfig(ini_path)

    @staticmethod
    def select_targets(
        config: ProjectConfig,
        settings: ProjectSettings,
        requested: Optional[Sequence[str]] = None
    ) -> List[str]:
        """Pick the targets to build.

        Explicit names win, then [project] default_targets, then every target
        in file order.

        Raises:
            ProjectConfigError: If the project declares no targets
        """
        if requested:
            return list(requested)
        if settings.default_targets:
            return list(settings.default_targets)

        targets = config.get_targets()
        if not targets:
            raise ProjectConfigError(f"No [target:NAME] sections found in {config.ini_path}")
        return targets


class CompilerSelector:
    """Chooses the compiler family for a command."""

    @staticmethod
    def select(settings: Optional[ProjectSettings], family: Optional[str] = None) -> ICompiler:
        """Create the compiler named on the command line or in kiln.ini.

        Falls back to the first family found on PATH.

        Raises:
            CompilerError: If the family is unknown or nothing is installed
        """
        family = family or (settings.compiler if settings else None)
        if family:
            return BuildComponentFactory.create_compiler(
                family,
                path=settings.compiler_path if settings else None,
                archiver=settings.archiver if settings else None,
            )
        return BuildComponentFactory.detect_compiler()


class ErrorFormatter:
    """Formats and displays error messages with ANSI color codes."""

    # ANSI color codes
    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message.

        Args:
            title: Error title (e.g., "File not found", "Build failed")
            message: Error message details
        """
        print()
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}")
        print()
        print(message)
        print()

    @staticmethod
    def print_success(message: str) -> None:
        print()
        print(f"{ErrorFormatter.GREEN}✓ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_warning(message: str) -> None:
        print()
        print(f"{ErrorFormatter.YELLOW}✗ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def handle_file_not_found(error: FileNotFoundError) -> None:
        ErrorFormatter.print_error("Error: File not found", str(error))
        print(f"Make sure you're in a kiln project directory with a {CONFIG_FILENAME} file.")
        sys.exit(1)

    @staticmethod
    def handle_configuration_error(error: Exception) -> None:
        """Handle a mistake in the build description.

        Args:
            error: ConfigurationError or CompilerError to report
        """
        ErrorFormatter.print_error("Error: Invalid build description", str(error))
        sys.exit(2)

    @staticmethod
    def handle_permission_error(error: PermissionError) -> None:
        ErrorFormatter.print_error("Error: Permission denied", str(error))
        sys.exit(1)

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        """Handle KeyboardInterrupt with standard formatting."""
        ErrorFormatter.print_warning("Build interrupted")
        sys.exit(130)  # Standard exit code for SIGINT

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Handle unexpected errors with standard formatting.

        Args:
            error: The exception to handle
            verbose: Whether to print traceback
        """
        message = f"{type(error).__name__}: {error}"
        ErrorFormatter.print_error("Unexpected error", message)

        if verbose:
            import traceback

            print("Traceback:")
            print(traceback.format_exc())

        sys.exit(1)


class PathValidator:
    """Validates project paths and directories."""

    @staticmethod
    def validate_project_dir(project_dir: Path) -> None:
        """Validate that project directory exists and is a directory.

        Raises:
            SystemExit: If path doesn't exist or isn't a directory
        """
        if not project_dir.exists():
            print(
                f"{ErrorFormatter.RED}✗ Error: Path does not exist: {project_dir}{ErrorFormatter.RESET}"
            )
            sys.exit(2)
        if not project_dir.is_dir():
            print(
                f"{ErrorFormatter.RED}✗ Error: Path is not a directory: {project_dir}{ErrorFormatter.RESET}"
            )
            sys.exit(2)
