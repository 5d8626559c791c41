"""Utility helpers for TruncSeeker."""
