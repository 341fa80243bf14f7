"""
Key Proxy Application
=====================

Reverse proxy that maps an inbound application key (``X-APP_KEY``) to a
backend base path and a real upstream key, then forwards the request.

Main Components:
----------------
- config.py: Environment-driven settings
- keys.py: Key table and its JSON loader
- errors.py: Error taxonomy rendered as plain-text responses
- proxy/routes.py: The catch-all proxy handler
- main.py: Application factory and process entry point
"""
