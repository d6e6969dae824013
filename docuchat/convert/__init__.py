"""Document conversion package.

Scope:
    Text-level PDF/DOCX conversion plus images-to-PDF and text-to-PDF
    rendering. Every converter writes a single output file the caller owns.
"""
