"""Test suite for the pytest-stories package.

This package contains unit and integration tests validating story
declaration, path enumeration, sequential replay, transcript recording,
story file loading, the command-line runner and pytest integration.
"""
