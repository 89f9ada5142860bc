"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: File-type gates, output names, XML namespaces
- exceptions: Custom exception hierarchy
- ingress: Input file model and file-type gating
"""
