"""Deployment helpers: resource naming, templates, chart manifests, registry tags and cluster ids."""

__version__ = "0.1.0"