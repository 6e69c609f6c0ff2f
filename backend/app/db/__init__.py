"""
Database utilities for SocietyPro
"""
