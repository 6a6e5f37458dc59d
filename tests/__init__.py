"""
TexSpell Tests Package
======================
Test suite for the correction core, memory store and engines.

Run all tests: python3 -m pytest tests/ -v
Run specific: python3 -m pytest tests/test_correction_session.py -v
"""

__version__ = "1.0.0"
