"""
Engine Tests Package
====================
Tests for the dictionary engines, word lists and engine configuration.
"""
