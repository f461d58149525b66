"""Presentation adapters over the game session: REST API and terminal play."""
