"""
Board Gateway — Routes Package
===============================

Route Inventory:
    - health.py:    GET /health, GET /
    - docs.py:      GET /docs, GET /openapi.json
    - dispatch.py:  everything else → auth / posts / comments collaborators,
                    or the Not Found envelope

dispatch.router must be included last: its catch-all path would otherwise
shadow the built-in endpoints.
"""
