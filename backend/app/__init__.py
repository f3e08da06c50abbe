"""Kittenboard backend."""
