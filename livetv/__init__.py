"""LiveTV - IPTV playlist catalog and playback session core."""
