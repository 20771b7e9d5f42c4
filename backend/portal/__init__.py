"""Webstability project portal backend."""
