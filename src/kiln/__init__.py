"""kiln - incremental build engine for C and C++ projects."""

__version__ = "0.1.0"
