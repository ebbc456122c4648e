"""
Clients module.

- Client CRUD through a row-scoped gateway
- Repository that refetches the whole list after every mutation
- Status statistics for the dashboard
"""
