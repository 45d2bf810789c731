"""Core dispatch primitives (event emitter and callback plumbing).

Kept free of socket/select concerns so it can be reused by streams, listeners,
the reactor itself, and application-level emitters.
"""
