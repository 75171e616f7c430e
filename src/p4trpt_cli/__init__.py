"""
Command line tools for Telemetry Reports.
"""
