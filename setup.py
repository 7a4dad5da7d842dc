#!/usr/bin/env python3
"""
Setup script for CIRISUpdater.
Installs the updater package only; tests are not shipped.
"""

from setuptools import setup, find_packages

# Most configuration is in pyproject.toml
# This file exists for compatibility with older pip versions

setup(
    packages=find_packages(include=["ciris_updater", "ciris_updater.*"]),
)
