"""Binding of logic entries (state logic and derivations) to field nodes."""
