"""The reactive field tree and the form engine that builds it."""
