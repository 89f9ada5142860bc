"""Shared helpers: loose numeric parsing, tabular codec, zip archives."""
