"""
Setup file.
"""

import os

from setuptools import find_packages, setup

URL = "https://github.com/wasix-org/wasixcc"
KEYWORDS = "wasix wasm webassembly clang llvm compiler wrapper toolchain sysroot"
HERE = os.path.dirname(os.path.abspath(__file__))

TOOL_ENTRY_POINT = "wasixcc.cli:tool_main"


def get_version() -> str:
    """Read __version__ from the package without importing it."""
    with open(os.path.join(HERE, "src", "wasixcc", "__init__.py"), encoding="utf-8") as f:
        for line in f:
            if line.startswith("__version__"):
                return line.split("=", 1)[1].strip().strip('"')
    raise RuntimeError("Unable to find __version__")


if __name__ == "__main__":
    setup(
        name="wasixcc",
        version=get_version(),
        description="Compiler wrapper for building WASIX modules with clang and wasm-ld",
        keywords=KEYWORDS,
        url=URL,
        package_dir={"": "src"},
        packages=find_packages("src"),
        python_requires=">=3.10",
        install_requires=[
            "requests>=2.28",
            "tqdm>=4.64",
        ],
        extras_require={
            "test": [
                "pytest>=7.0",
            ],
        },
        entry_points={
            "console_scripts": [
                f"wasixcc = {TOOL_ENTRY_POINT}",
                f"wasixcxx = {TOOL_ENTRY_POINT}",
                f"wasixld = {TOOL_ENTRY_POINT}",
                f"wasixar = {TOOL_ENTRY_POINT}",
                f"wasixnm = {TOOL_ENTRY_POINT}",
                f"wasixranlib = {TOOL_ENTRY_POINT}",
                "wasixccenv = wasixcc.cli:env_main",
            ],
        },
        include_package_data=True)
