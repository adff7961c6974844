"""Command dispatch: one strategy per verb family, selected through an ordered registry.

Kept free of FastAPI concerns so the same engine serves API routes, the REPL script, and tests.
"""
