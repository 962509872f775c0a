#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Setup script for the Lineage Context Graph Builder

This file is kept for legacy compatibility and pip editable installs.
The main package configuration is in pyproject.toml.
"""

from pathlib import Path

from setuptools import setup

VERSION = "1.0.0"

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
if readme_file.exists():
    long_description = readme_file.read_text(encoding="utf-8")
else:
    long_description = "Lineage context graph builder for metadata repositories"

# All other configuration comes from pyproject.toml
setup(
    version=VERSION,
    long_description=long_description,
    long_description_content_type="text/markdown",
)
