from __future__ import annotations

"""
GPG Password Store Viewer.

Indexes a directory tree of GPG-encrypted credential files and mediates
safe viewing and editing of individual entries through the external
``gpg`` tool.
"""

__version__ = "1.0.0"
