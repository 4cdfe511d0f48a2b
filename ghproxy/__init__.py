"""Reverse proxy for GitHub release, archive, raw and gist downloads."""
