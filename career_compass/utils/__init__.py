"""
Utilities: backend client, session storage, guards, validation, logging
"""
