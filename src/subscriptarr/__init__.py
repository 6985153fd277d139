"""Subscriptarr: mirror subscribed channels' recent uploads into YouTube playlists."""

__version__ = "0.1.0"
