# Room Cleaning Tracker - Modules Package
"""
Core business logic modules for the room cleaning tracker: data store access,
identity and role routing, QR codes, cleaning and problem report recording,
and report export.
"""
