"""Command implementations for the ``tiercache`` CLI."""
