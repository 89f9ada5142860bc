"""Coordinate conversions: geodetic math and the row-level pipeline."""
