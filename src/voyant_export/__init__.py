# ABOUTME: Package initialization for the voyant-export BagIt exporter
# ABOUTME: Defines version and sets up package-level logging configuration
"""voyant-export - Bibliographic collections to Voyant-ready BagIt archives"""

__version__ = "0.1.0"

# Set up logging for the package
import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())
