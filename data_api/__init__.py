"""
Audited data API.

- models: BaseEntity and entities
- persistence: audit-stamping session
- repositories: generic repository with soft delete
- unit_of_work: commit boundary
- core: middlewares, CORS, lifespan
"""
