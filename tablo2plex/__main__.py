"""Allow running as ``python -m tablo2plex``."""

from tablo2plex.main import main

main()
