"""
Email List Modules
==================

Flask blueprints registered by the EmailList extension.
"""

__all__ = ['subscribers', 'ops']
