"""
Pytest configuration and fixtures for CIRISUpdater tests.
"""

import os


def pytest_configure(config):
    """
    Clear environment overrides before any test modules are imported.
    This runs very early in the pytest lifecycle.
    """
    for key in list(os.environ):
        if key.startswith("CIRIS_UPDATER_"):
            del os.environ[key]
