"""Shared validators package for the application.

Reusable checks applied by request schemas across features.

Available validators:
- password.py: Password strength rules for registration (character classes,
  the @$!%*?& special set and bcrypt's 72-byte input limit)
"""
