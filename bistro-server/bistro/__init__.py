"""Cafeteria weekly menu and meal rating service."""
