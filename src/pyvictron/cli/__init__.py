"""Command line tools for pyvictron."""
