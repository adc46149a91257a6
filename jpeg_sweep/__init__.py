"""Normalize uploaded raster images into web-safe JPEG derivatives."""
