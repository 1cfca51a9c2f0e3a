"""
Package: registry
Description: Known webhook destinations and their change notifications.
"""
