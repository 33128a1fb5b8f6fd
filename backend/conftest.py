"""
Root conftest.py to set up Python path for pytest.

This runs before test collection, ensuring `cup` and `tests` imports work
without installing the package.
"""
import sys
import os

# Add backend directory to Python path FIRST
backend_dir = os.path.dirname(os.path.abspath(__file__))
if backend_dir not in sys.path:
    sys.path.insert(0, backend_dir)
