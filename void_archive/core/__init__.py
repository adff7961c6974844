"""Core command-line primitives (parsed command context and narrative events).

Kept free of FastAPI concerns so it can be reused by API routes, the REPL script, and tests.
"""
