"""Infrastructure layer — graph store, traversal engine, persistence, queries.

This layer depends on stdlib, domain models, and third-party libs
(NetworkX, pluggy). It must never import from services, commands, or output.
"""
