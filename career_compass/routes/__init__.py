"""
HTTP routes for Career Compass
"""
