"""Helpers shared by the DRF layer of every app."""
