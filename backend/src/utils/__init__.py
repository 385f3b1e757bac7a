"""
Utility modules for the clinic scheduling application.

This package contains shared utility functions and helpers used across
the application, including datetime utilities and tenant-explicit
database query helpers.
"""
