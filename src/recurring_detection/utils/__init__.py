"""
Utility helpers for recurring charge detection.
"""
