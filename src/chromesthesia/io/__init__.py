"""Serialization of analysis results."""
