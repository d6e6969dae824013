"""Attachment preprocessing package for API adapters.

Architectural role:
- Classifies uploads as images or documents and extracts document text.
- Owns the temporary-file lifecycle of uploaded files.

Scope:
- Content preprocessing only; no HTTP endpoint definitions.
"""
