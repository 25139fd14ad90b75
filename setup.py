from setuptools import setup, find_packages

setup(
    name="apply-changes",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "pyyaml",
        "textual",
        # Post-edit syntax check
        "tree-sitter>=0.22",
        "tree-sitter-python",
        "tree-sitter-javascript",
        "tree-sitter-typescript",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "apply-changes=apply_changes.cli:main",
        ],
    },
    description="Review and apply assistant-proposed file edits to a project.",
)
