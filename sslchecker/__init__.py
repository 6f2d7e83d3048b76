"""
SSL checker: builds TLS contexts from PEM certificate bundles and keystores.
"""

__version__ = "1.0.0"
