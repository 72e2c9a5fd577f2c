"""Pipelines and helpers that orchestrate the CMS and CKAN calls."""
