"""Initialization tooling for a web application deployed on Google Cloud."""

__version__ = "0.1.0"
