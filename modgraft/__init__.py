"""
modgraft — transactional code injection for project modules.
"""

__version__ = "0.1.0"
