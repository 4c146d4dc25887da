"""
docshield - caching and resilience layer for reads against a rate-limited document API.
"""
