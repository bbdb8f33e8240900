"""pi-share: serve a folder over HTTP with uploads, a file explorer and a live console."""

from pi.share.config import Config
from pi.share.console.app import create_app
from pi.share.controller import ShareController
from pi.share.server.app import ServeSettings, create_share_app

__all__ = ["Config", "ServeSettings", "ShareController", "create_app", "create_share_app"]
