"""Business services behind the HTTP routers."""
