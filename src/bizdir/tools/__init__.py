"""
bizdir.tools

Operational command-line tools (run against `Settings.database_url`).
"""
