"""
Setup file.
"""

import os

from setuptools import find_packages, setup

URL = "https://github.com/zackees/kiln"
KEYWORDS = "build c c++ clang gcc incremental compiler depfile make"
HERE = os.path.dirname(os.path.abspath(__file__))


def read_version() -> str:
    """Read __version__ without importing the package."""
    with open(os.path.join(HERE, "src", "kiln", "__init__.py"), encoding="utf-8") as f:
        for line in f:
            if line.startswith("__version__"):
                return line.split("=", 1)[1].strip().strip('"')
    raise RuntimeError("Unable to find __version__")


if __name__ == "__main__":
    setup(
        name="kiln",
        version=read_version(),
        description="Incremental build engine for C and C++ projects",
        maintainer="Zachary Vorhies",
        keywords=KEYWORDS,
        url=URL,
        package_dir={"": "src"},
        packages=find_packages("src"),
        python_requires=">=3.8",
        install_requires=["psutil"],
        extras_require={"test": ["pytest"]},
        entry_points={"console_scripts": ["kiln = kiln.cli:main"]},
        include_package_data=True)
