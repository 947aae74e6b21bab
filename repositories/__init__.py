"""
repositories/ - Data Access Layer
==================================
Each repository encapsulates all SQL queries for one collection
(profiles, clients, charges, notifications) and returns domain model objects.
Database errors surface as UpstreamFailure.
"""
