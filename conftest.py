"""
Root pytest configuration for the Django project.

Django lives under app/ (added to sys.path through pytest's `pythonpath`).
App-specific fixtures are defined in each app's tests/conftest.py.
"""

import os

# Ensure Django settings are configured before any tests run
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
