#!/usr/bin/env python3
import setuptools

setuptools.setup(
    name="goimports-reviser",
    version="0.1.0",
    packages=["goimports_reviser"],
    python_requires=">=3.11",
    install_requires=[
        "click",
        "tree-sitter>=0.25",
        "tree-sitter-language-pack>=0.9,<1",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "goimports-reviser = goimports_reviser.cli:main",
        ],
    },
    author="",
    description="Command-line tool to sort, group and clean up the imports of Go source files",
    license="MIT",
)
