#!/usr/bin/env python
"""
Run the backend test suite app by app
Usage: python Doc/run_tests.py [app ...]
"""
import os
import sys
from pathlib import Path

import django
from django.conf import settings
from django.test.utils import get_runner

APPS = [
    'backend.core',
    'backend.dealers',
    'backend.vehicles',
    'backend.deals',
    'backend.logistics',
    'backend.payments',
    'backend.documents',
    'backend.notifications',
    'backend.marketing',
    'backend.reports',
]

if __name__ == "__main__":
    sys.path.insert(0, str(Path(__file__).resolve().parent.parent))
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'backend.config.settings')
    django.setup()
    TestRunner = get_runner(settings)
    test_runner = TestRunner()
    labels = [f'backend.{name}' for name in sys.argv[1:]] or APPS
    failures = test_runner.run_tests(labels)
    sys.exit(bool(failures))
