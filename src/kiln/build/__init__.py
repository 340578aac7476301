"""
Build system components for kiln.

This package provides the incremental build engine:
- Command assembly and process execution
- Dependency file (.d) parsing and the per-target dependency graph
- Timestamp-based staleness checks
- Compiler families (clang, gcc)
- Unit and target orchestration
- Self-rebuild bootstrap for compiled build descriptions
"""

from .bootstrap import (
    BootstrapError,
    BootstrapState,
    SelfRebuilder,
    ensure_current,
    resolve_binary_path,
)
from .build_component_factory import BuildComponentFactory
from .command import Command, quote_argument
from .compiler import (
    CompilerError,
    GnuDriverCompiler,
    ICompiler,
    OutputKind,
    artifact_filename,
)
from .compiler_clang import ClangCompiler
from .compiler_gcc import GccCompiler
from .depfile import (
    DependencyRecord,
    DepfileParseError,
    format_depfile,
    parse_depfile,
    read_depfile,
)
from .graph import DependencyGraph
from .orchestrator import BuildOrchestratorError, BuildResult, TargetBuildOrchestrator
from .process_runner import (
    ProcessError,
    ProcessExitError,
    ProcessRunner,
    ProcessSpawnError,
    RunOptions,
    RunResult,
)
from .staleness import needs_rebuild
from .unit import TranslationUnit, UnitKind
from .unit_builder import UnitBuilder, UnitBuildResult

__all__ = [
    'BootstrapError',
    'BootstrapState',
    'BuildComponentFactory',
    'BuildOrchestratorError',
    'BuildResult',
    'ClangCompiler',
    'Command',
    'CompilerError',
    'DependencyGraph',
    'DependencyRecord',
    'DepfileParseError',
    'GccCompiler',
    'GnuDriverCompiler',
    'ICompiler',
    'OutputKind',
    'ProcessError',
    'ProcessExitError',
    'ProcessRunner',
    'ProcessSpawnError',
    'RunOptions',
    'RunResult',
    'SelfRebuilder',
    'TargetBuildOrchestrator',
    'TranslationUnit',
    'UnitBuildResult',
    'UnitBuilder',
    'UnitKind',
    'artifact_filename',
    'ensure_current',
    'format_depfile',
    'needs_rebuild',
    'parse_depfile',
    'quote_argument',
    'read_depfile',
    'resolve_binary_path',
]
