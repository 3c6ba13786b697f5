"""API routers, one factory per resource."""
