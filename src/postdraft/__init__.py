"""Postdraft: blog post editor with streamed AI completions and debounced autosave."""

__version__ = "0.1.0"
