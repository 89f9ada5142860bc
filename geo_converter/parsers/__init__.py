"""Source-format parsers: raw documents to GeoPoints or generic records.

Every parser is a pure function of its input and raises a ``ParseError``
subclass with a user-facing message on failure.
"""
