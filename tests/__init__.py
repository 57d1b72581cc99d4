"""
tablo2plex Test Suite

Unit, integration and end-to-end tests for the Tablo HDHomeRun gateway.
"""
