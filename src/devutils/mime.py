"""Content types for files served by the dev server."""
from __future__ import annotations

import pathlib

CONTENT_TYPES = {
    '.html': 'text/html',
    '.css': 'text/css',
    '.js': 'application/javascript',
    '.mjs': 'application/javascript',
    '.map': 'application/json',
    '.json': 'application/json',
    '.webmanifest': 'application/manifest+json',
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.gif': 'image/gif',
    '.svg': 'image/svg+xml',
    '.webp': 'image/webp',
    '.ico': 'image/x-icon',
    '.woff': 'font/woff',
    '.woff2': 'font/woff2',
    '.txt': 'text/plain',
    '.xml': 'application/xml',
    '.pdf': 'application/pdf',
}


def content_type_for(filename: str) -> str:
    """Map a file name to its MIME type by extension."""
    ext = pathlib.PurePosixPath(filename).suffix.lower()
    return CONTENT_TYPES.get(ext, 'application/octet-stream')
