"""
Services package for recurring charge detection.
"""
