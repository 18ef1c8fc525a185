"""Data models for Postdraft."""
