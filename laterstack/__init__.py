"""LaterStack: a read-later queue scored against your interests."""
