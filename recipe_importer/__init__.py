"""
Drive recipe importer.

Imports recipe documents from a Google Drive folder tree into Mealie,
tagging each recipe with the folders it was found in.
"""

__version__ = "0.1.0"
