"""
Command-line interface for kiln.

This module provides the `kiln` CLI tool for building C and C++ projects
described by a kiln.ini file.
"""

import argparse
import shutil
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from kiln import __version__
from kiln.build import (
    BootstrapError,
    BootstrapState,
    BuildComponentFactory,
    Command,
    CompilerError,
    DepfileParseError,
    SelfRebuilder,
    TargetBuildOrchestrator,
    read_depfile,
    resolve_binary_path,
)
from kiln.build.unit_builder import depfile_path_for, object_path_for
from kiln.cli_utils import (
    CompilerSelector,
    ErrorFormatter,
    PathValidator,
    ProjectDetector,
    setup_logging,
)
from kiln.config import ConfigurationError


@dataclass
class BuildArgs:
    """Arguments for the build command."""

    project_dir: Path
    targets: List[str] = field(default_factory=list)
    jobs: Optional[int] = None
    compiler: Optional[str] = None
    clean: bool = False
    verbose: bool = False


@dataclass
class CleanArgs:
    """Arguments for the clean command."""

    project_dir: Path
    verbose: bool = False


@dataclass
class DepsArgs:
    """Arguments for the deps command."""

    project_dir: Path
    target: str
    verbose: bool = False


@dataclass
class BootstrapArgs:
    """Arguments for the bootstrap command."""

    project_dir: Path
    binary_args: List[str] = field(default_factory=list)
    compiler: Optional[str] = None
    verbose: bool = False


def build_command(args: BuildArgs) -> None:
    """Build targets of a project.

    Examples:
        kiln build                    # Build default targets
        kiln build examples/hello     # Build a specific project
        kiln build -t app -t core     # Build 'app' and 'core'
        kiln build -j 8               # Compile with 8 parallel jobs
        kiln build --clean            # Remove the build directory first
    """
    print(f"kiln build v{__version__}")
    print()

    try:
        config = ProjectDetector.find_config(args.project_dir)
        settings = config.get_project_settings()
        project = config.load_project()
        target_names = ProjectDetector.select_targets(config, settings, args.targets)
        targets = [project[name] for name in target_names]

        compiler = CompilerSelector.select(settings, args.compiler)
        orchestrator = BuildComponentFactory.create_orchestrator(
            compiler, jobs=args.jobs or settings.jobs, verbose=args.verbose
        )

        if args.clean and project.build_dir.exists():
            print(f"Cleaning {project.build_dir}...")
            shutil.rmtree(project.build_dir)

        if args.verbose:
            print(f"Building project: {project.name} ({args.project_dir})")
            print(f"Compiler: {compiler.family} ({compiler.path})")
            print()

        start_time = time.time()
        for target in targets:
            print(f"Building target: {target.name}...")
            result = orchestrator.build(target, project.root, project.build_dir)
            if not result.success:
                ErrorFormatter.print_error("Build failed!", result.message)
                sys.exit(1)

            rebuilt = len(result.rebuilt)
            print(f"  {result.output_path} ({rebuilt} of {len(result.objects)} units compiled)")
        build_time = time.time() - start_time

        ErrorFormatter.print_success("Build successful!")
        print(f"Build time: {build_time:.2f}s")
        sys.exit(0)

    except FileNotFoundError as e:
        ErrorFormatter.handle_file_not_found(e)
    except (ConfigurationError, CompilerError) as e:
        ErrorFormatter.handle_configuration_error(e)
    except PermissionError as e:
        ErrorFormatter.handle_permission_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def clean_command(args: CleanArgs) -> None:
    """Remove the build directory of a project.

    Examples:
        kiln clean
        kiln clean examples/hello
    """
    try:
        config = ProjectDetector.find_config(args.project_dir)
        build_dir = config.get_project_settings().build_dir

        if build_dir.exists():
            shutil.rmtree(build_dir)
            ErrorFormatter.print_success(f"Removed {build_dir}")
        else:
            print(f"Nothing to clean ({build_dir} does not exist)")
        sys.exit(0)

    except FileNotFoundError as e:
        ErrorFormatter.handle_file_not_found(e)
    except ConfigurationError as e:
        ErrorFormatter.handle_configuration_error(e)
    except PermissionError as e:
        ErrorFormatter.handle_permission_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def deps_command(args: DepsArgs) -> None:
    """Print the header dependencies recorded by the last build of a target.

    Examples:
        kiln deps -t app
    """
    try:
        config = ProjectDetector.find_config(args.project_dir)
        project = config.load_project()
        target = project[args.target]

        for unit in target.units:
            if not unit.compilable:
                continue
            output_dir = TargetBuildOrchestrator.output_dir_for(
                unit, project.root, project.build_dir
            )
            depfile = depfile_path_for(object_path_for(unit.source_path, output_dir))
            print(unit.source_path)
            try:
                target.graph.record(unit, read_depfile(depfile))
            except FileNotFoundError:
                print("  (not built yet)")
                continue
            except DepfileParseError as e:
                ErrorFormatter.print_warning(str(e))
                continue
            for prerequisite in target.graph.dependencies_of(unit):
                print(f"  {prerequisite}")
        sys.exit(0)

    except FileNotFoundError as e:
        ErrorFormatter.handle_file_not_found(e)
    except ConfigurationError as e:
        ErrorFormatter.handle_configuration_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def bootstrap_command(args: BootstrapArgs) -> None:
    """Rebuild the build description binary if needed, then run it.

    Examples:
        kiln bootstrap                  # Run ./build, rebuilding it first if stale
        kiln bootstrap -- release -j 4  # Pass arguments to the binary
    """
    try:
        config = ProjectDetector.find_config(args.project_dir)
        bootstrap = config.get_bootstrap_settings()
        if bootstrap is None:
            raise ConfigurationError(f"{config.ini_path} has no [bootstrap] section")

        settings = config.get_project_settings()
        compiler = CompilerSelector.select(settings, args.compiler)
        runner = BuildComponentFactory.create_runner(args.verbose)
        binary = resolve_binary_path(bootstrap.binary)

        rebuilder = SelfRebuilder(
            compiler,
            bootstrap.source,
            bootstrap.extra_sources,
            runner=runner,
            standard=bootstrap.std,
        )
        argv = [str(binary)] + args.binary_args
        if rebuilder.run(argv, binary=binary) is BootstrapState.SUPERSEDED:
            sys.exit(0)

        # Binary was already current: run it as it is
        result = runner.execute(Command(*argv))
        sys.exit(0 if result.success else (result.returncode or 1))

    except FileNotFoundError as e:
        ErrorFormatter.handle_file_not_found(e)
    except (ConfigurationError, CompilerError) as e:
        ErrorFormatter.handle_configuration_error(e)
    except BootstrapError as e:
        ErrorFormatter.print_error("Bootstrap failed!", str(e))
        sys.exit(e.returncode or 1)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def _add_project_dir(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "project_dir",
        nargs="?",
        type=Path,
        default=Path.cwd(),
        help="Project directory (default: current directory)",
    )


def _add_verbose(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose output",
    )


def main(argv: Optional[List[str]] = None) -> None:
    """kiln - incremental build engine for C and C++ projects."""
    parser = argparse.ArgumentParser(
        prog="kiln",
        description="kiln - incremental C/C++ build engine",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"kiln {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Build command
    build_parser = subparsers.add_parser(
        "build",
        help="Build project targets",
    )
    _add_project_dir(build_parser)
    build_parser.add_argument(
        "-t",
        "--target",
        dest="targets",
        action="append",
        default=[],
        help="Target to build (repeatable, default: all targets)",
    )
    build_parser.add_argument(
        "-j",
        "--jobs",
        type=int,
        default=None,
        help="Parallel compile jobs (default: project.jobs or 1)",
    )
    build_parser.add_argument(
        "--compiler",
        default=None,
        help="Compiler family: clang or gcc (default: from kiln.ini or PATH)",
    )
    build_parser.add_argument(
        "-c",
        "--clean",
        action="store_true",
        help="Remove the build directory before building",
    )
    _add_verbose(build_parser)

    # Clean command
    clean_parser = subparsers.add_parser(
        "clean",
        help="Remove the build directory",
    )
    _add_project_dir(clean_parser)
    _add_verbose(clean_parser)

    # Deps command
    deps_parser = subparsers.add_parser(
        "deps",
        help="Show recorded header dependencies of a target",
    )
    _add_project_dir(deps_parser)
    deps_parser.add_argument(
        "-t",
        "--target",
        required=True,
        help="Target to inspect",
    )
    _add_verbose(deps_parser)

    # Bootstrap command
    bootstrap_parser = subparsers.add_parser(
        "bootstrap",
        help="Rebuild the build description binary if stale and run it",
    )
    _add_project_dir(bootstrap_parser)
    bootstrap_parser.add_argument(
        "--compiler",
        default=None,
        help="Compiler family: clang or gcc (default: from kiln.ini or PATH)",
    )
    _add_verbose(bootstrap_parser)
    bootstrap_parser.add_argument(
        "binary_args",
        nargs=argparse.REMAINDER,
        help="Arguments passed to the binary (after --)",
    )

    parsed_args = parser.parse_args(argv)

    # If no command specified, show help
    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    PathValidator.validate_project_dir(parsed_args.project_dir)
    setup_logging(parsed_args.verbose)

    if parsed_args.command == "build":
        if parsed_args.jobs is not None and parsed_args.jobs < 1:
            parser.error("--jobs must be at least 1")
        build_command(
            BuildArgs(
                project_dir=parsed_args.project_dir,
                targets=parsed_args.targets,
                jobs=parsed_args.jobs,
                compiler=parsed_args.compiler,
                clean=parsed_args.clean,
                verbose=parsed_args.verbose,
            )
        )
    elif parsed_args.command == "clean":
        clean_command(CleanArgs(project_dir=parsed_args.project_dir, verbose=parsed_args.verbose))
    elif parsed_args.command == "deps":
        deps_command(
            DepsArgs(
                project_dir=parsed_args.project_dir,
                target=parsed_args.target,
                verbose=parsed_args.verbose,
            )
        )
    elif parsed_args.command == "bootstrap":
        binary_args = list(parsed_args.binary_args)
        if binary_args and binary_args[0] == "--":
            binary_args = binary_args[1:]
        bootstrap_command(
            BootstrapArgs(
                project_dir=parsed_args.project_dir,
                binary_args=binary_args,
                compiler=parsed_args.compiler,
                verbose=parsed_args.verbose,
            )
        )


if __name__ == "__main__":
    main()
