"""
CRUD core REST API for people, roles and building components
"""

__version__ = "1.0.0"
