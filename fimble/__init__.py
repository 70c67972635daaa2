"""Fimble - file integrity monitoring from the command line."""
