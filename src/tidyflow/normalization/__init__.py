"""
Normalization of raw datasets into analysis tables.
"""
