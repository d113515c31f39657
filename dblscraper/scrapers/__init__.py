"""Concrete scrapers and their record models."""
