"""Textual front end for lazypulumi."""
