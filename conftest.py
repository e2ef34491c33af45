"""
Root pytest configuration for the Django project.

Required secrets are read from the environment without defaults, so test
values are provided here before Django loads settings. App-specific
fixtures live in each app's tests/conftest.py.
"""

import os

import django

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_dummy")


def pytest_configure():
    """Configure Django settings before tests run."""
    django.setup()
