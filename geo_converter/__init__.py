"""Geo Converter.

Converts KML, KMZ, GPX, GeoJSON, JSON, XLSX, CSV/text and PDF inputs
into CSV, GPX, KML or KMZ outputs, with DD/DMS/UTM coordinate
conversion and two AI-assisted flows (data cleanup and PDF table
extraction) delegated to an external service.
"""

__version__ = "0.1.0"
