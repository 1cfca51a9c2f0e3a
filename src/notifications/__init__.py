"""
Package: notifications
Description: Event fan-out, queue progress tracking and rendering.
"""
