"""Helpers shared by the service layer."""
