"""Built-in HTML pages served by the file server."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

UPLOAD_FORM_HTML = """<!DOCTYPE html>
<html>
<head>
    <title>File Upload</title>
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <style>
        body { font-family: sans-serif; display: flex; flex-direction: column; align-items: center; justify-content: center; min-height: 100vh; margin: 0; background-color: #f4f4f4; color: #333; }
        .container { background-color: #fff; padding: 25px; border-radius: 10px; box-shadow: 0 4px 8px rgba(0,0,0,0.1); max-width: 400px; width: 90%; text-align: center; }
        form { display: flex; flex-direction: column; align-items: center; }
        input[type="file"] { margin-bottom: 15px; border: 1px solid #ddd; padding: 10px; border-radius: 5px; width: 100%; box-sizing: border-box; }
        input[type="submit"] { background-color: #007bff; color: white; padding: 12px 20px; border: none; border-radius: 5px; cursor: pointer; font-size: 16px; }
        p { margin-top: 20px; font-size: 14px; color: #666; }
        a { color: #007bff; text-decoration: none; }
    </style>
</head>
<body>
    <div class="container">
        <h1>Upload File to Server</h1>
        <form action="/upload" method="post" enctype="multipart/form-data">
            <input type="file" name="fileToUpload" id="fileToUpload" required>
            <input type="submit" value="Upload File">
        </form>
        <p>Ensure a folder is selected for uploads to work.</p>
        <p><a href="/">Go Back to Root</a></p>
    </div>
</body>
</html>
"""

PLACEHOLDER_INDEX_HTML = (
    "<html><body><h1>Hello from pi-share!</h1>"
    "<p>You requested: /</p><p>No custom folder selected.</p></body></html>"
)

API_PLACEHOLDER = {"message": "This is an API response."}


def load_not_found_page(path: str | None) -> str | None:
    """Read a custom 404 page. Returns None when unset, missing or unreadable."""
    if not path:
        return None
    page = Path(path)
    if not page.is_file():
        logger.warning("Custom 404 page does not exist: %s", page)
        return None
    try:
        return page.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read custom 404 page %s: %s", page, e)
        return None
