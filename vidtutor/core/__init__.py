"""
Core functionality of the video tutor gateway.

This package contains the tutorial engines and their dispatcher, the
streaming protocol translation, and the video metadata and proxy lookups.
"""
