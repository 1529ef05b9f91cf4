"""Model Context Protocol adapter.

Exposes the download workflow as the ``download_images`` tool over stdio.
"""
