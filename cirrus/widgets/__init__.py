"""Shared Textual widgets and modals."""
