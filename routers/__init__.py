"""HTTP routers; mounted by server.create_app."""
