"""wellwisher CLI -- Typer-based command-line interface.

Entry point: ``wellwisher`` (registered in pyproject.toml).
"""
