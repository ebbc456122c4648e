"""
Feature modules live under this package.

Each module owns its routes/models/services and reuses the platform
primitives (auth, audit, DB session, session events).
"""
