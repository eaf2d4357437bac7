"""Core domain models and protocol interfaces."""
