"""
TechDoc setup.py — Package configuration and CLI entry point.
"""

from setuptools import find_packages, setup

setup(
    name="techdoc",
    version="1.0.0",
    description="TechDoc — file-backed document store with a JSON index",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    entry_points={
        "console_scripts": [
            "techdoc=techdoc.cli:main",
        ],
    },
    install_requires=[
        "pydantic>=2.5",
        "pyyaml>=6.0",
        "fastapi>=0.110",
        "uvicorn>=0.27",
        "httpx>=0.27",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
        ],
    },
)
