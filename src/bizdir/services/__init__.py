"""
bizdir.services

Domain services shared by routers.

Responsibilities:
- Pure domain helpers (slugs, price parsing, price matching, CSV import).
- Multi-step workflows that span repositories (picker assignment, AI agent turns).
"""

# Package marker.
