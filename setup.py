"""
setup.py

Packaging metadata and CLI entry point for batch-render.

Version: 0.1.0. Parameterized batch rendering: binding enumeration, bounded
concurrent dispatch with per-job timeouts, collision-free output layout and
JSON run summaries.
"""
from setuptools import setup, find_packages

setup(
    name="batch-render",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "click",
        "pydantic>=2.0",
        "pyyaml",
        "jinja2",
        "python-dotenv",
        "tqdm",
    ],
    extras_require={
        "test": [
            "pytest",
            "hypothesis",
        ],
    },
    entry_points={
        "console_scripts": [
            "batch-render=cli:cli",
        ],
    },
    python_requires=">=3.8",
)
