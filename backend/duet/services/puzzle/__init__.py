"""Puzzle domain services: level building, movement, sessions.

Everything here is transport-agnostic. Socket handlers and HTTP routes
call into these modules with an explicit session and client identity.
"""
