"""
Career Compass

Authentication and role-based dashboards backed by Supabase.
"""

__version__ = "1.0.0"
