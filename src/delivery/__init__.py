"""
Package: delivery
Description: Payload delivery to webhook destinations.

Provides single-attempt push delivery and the flat-backoff retry
policy that turns attempts into completion events.
"""
