"""Utility modules for hookstage."""
