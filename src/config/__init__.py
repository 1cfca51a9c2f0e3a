"""
Package: config
Description: Application settings loaded from the environment.
"""
