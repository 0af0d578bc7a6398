"""
Board Gateway — Middleware Package
===================================

Cross-cutting stages every request passes through before routing.

Middleware Chain (outermost first):
    Request → [Request ID] → [Access Log] → [Security Headers]
            → [Error Terminal] → [Origin Policy] → [JSON Body] → [Session]
            → Route

    Why this order:
    1. Request ID first so every later log line carries it.
    2. Security headers wrap the error terminal: error, 404 and
       denied-origin responses get the bundle too.
    3. The error terminal wraps every stage that can fail, so failures in
       middleware and in routes render the same envelope.
    4. Origin policy is the first decision: a denied origin never has its
       body read or its session loaded. Preflights end here.
    5. Body parsing before the session, so a malformed body costs no
       database round trip.
    6. Session last, closest to the handlers that mutate it; it commits
       after the route returns.
"""
