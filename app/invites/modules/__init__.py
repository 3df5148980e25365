"""
Feature modules live under this package.

Each module owns its models, service functions and API blueprint, and reuses
platform primitives (auth, per-wedding access, audit, storage, DB session).
"""
