"""
Data ingestion layer for loading raw data with schema validation.

All raw data loading happens through this module to ensure
consistent validation at system boundaries.
"""
