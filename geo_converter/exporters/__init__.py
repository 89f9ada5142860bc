"""GeoJSON exporters: FeatureCollection mappings to CSV, GPX, KML and KMZ."""

from geo_converter.exporters.csv import geojson_to_csv
from geo_converter.exporters.gpx import geojson_to_gpx
from geo_converter.exporters.kml import geojson_to_kml
from geo_converter.exporters.kmz import export_kmz

__all__ = [
    "export_kmz",
    "geojson_to_csv",
    "geojson_to_gpx",
    "geojson_to_kml",
]
