"""REST routers, one module per resource. Mounted under /api by api_server."""
