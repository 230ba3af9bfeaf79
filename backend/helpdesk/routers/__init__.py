"""HTTP routers, one module per controller."""
