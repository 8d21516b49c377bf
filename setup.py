#!/usr/bin/env python3
"""
Person Registry Setup Script
============================
Allows installation of the person-registry package.

Usage:
    pip install -e .           # Development install
    pip install -e ".[test]"   # With the test dependencies
    pip install .              # Regular install
"""

from setuptools import setup, find_packages

setup(
    name="person-registry",
    version="1.0.0",
    packages=find_packages(include=["registry", "registry.*"]),
    python_requires=">=3.10",
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "person-registry=registry.server:main",
        ],
    },
)
