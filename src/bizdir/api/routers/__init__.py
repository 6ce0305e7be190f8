"""
bizdir.api.routers

HTTP routers, one module per surface (public directory, office, agent, admin).
"""

# Package marker.
