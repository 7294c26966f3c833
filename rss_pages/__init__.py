"""Aggregate RSS/Atom feeds into a paginated, pre-rendered site."""
