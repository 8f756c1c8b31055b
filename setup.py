"""
Setup script for sqlalchemy-seedfile.

This file is provided for backward compatibility with older pip versions.
The package configuration is defined in pyproject.toml.
"""

from setuptools import setup

setup()
