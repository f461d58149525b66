"""Reversi engine: rules, positional evaluator, three-tier AI and a game session controller."""
