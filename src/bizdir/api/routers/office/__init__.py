"""
bizdir.api.routers.office

Resident back office: everything a business owner edits about their own tenants.
"""

# Package marker.
