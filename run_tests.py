#!/usr/bin/env python
"""
Test runner script for running every app's test suite
Usage: python run_tests.py
"""
import os
import sys

import django
from django.conf import settings
from django.test.utils import get_runner

if __name__ == "__main__":
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'strideos.config.settings')
    django.setup()
    TestRunner = get_runner(settings)
    test_runner = TestRunner()
    failures = test_runner.run_tests([
        'strideos.core',
        'strideos.clients',
        'strideos.projects',
        'strideos.tasks',
        'strideos.sprints',
        'strideos.notifications',
    ])
    sys.exit(bool(failures))
