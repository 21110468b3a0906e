"""
SQLite persistence for the roster: connection management, schema creation
and the Database coordinator used at startup and shutdown.
"""
