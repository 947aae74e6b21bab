"""
handlers/ - Presentation Layer
================================
Telegram command handlers for tenants managing clients and charges.
Each handler parses the command arguments, calls one service and replies
in Portuguese. Domain errors are turned into replies by
handlers.common.reports_errors; lifecycle rules stay in services/.
"""
