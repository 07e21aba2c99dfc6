"""Validators: built-in checks, custom and asynchronous validators, messages."""
