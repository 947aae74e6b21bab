"""
db/ - Database Layer
====================
Handles the PostgreSQL connection pool, schema initialization and the
`update_overdue_charges` stored procedure.
This layer is the lowest in the architecture; it only knows config, the logger
and the error taxonomy.
"""
