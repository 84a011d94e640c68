"""
Exchange Client Package

Each exchange has its own subfolder with:
- signer.py / auth.py: request authentication
- api_client.py: REST API logic
- ws_client.py: WebSocket streaming logic
- client_factory.py: Builds clients over a shared connection pool
"""
