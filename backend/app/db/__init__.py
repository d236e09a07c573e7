"""
Database layer.

- prisma_client: Prisma ORM client and connection lifecycle
- records: typed rows handed to the services
- generation_store: store protocol and its Prisma implementation

The Prisma client is imported lazily by ``generation_store`` so the
services and their tests do not need a generated client.
"""
