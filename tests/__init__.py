"""
Test suite for the manual badge award components
"""
