"""Core module - configuration and observability shared by every package.

Domain logic lives in /supplier_resolver/; the document store collaborator
lives in /documents/.
"""

__version__ = "1.0.0"
