"""
FastAPI REST API for the books collection.

This module provides CRUD endpoints over a single MongoDB collection:
- Read a book by ID
- Create a book with a generated ID
- Merge-update a book's fields
- Delete a book
"""
