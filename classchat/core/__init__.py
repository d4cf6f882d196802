"""
Core configuration, persistence, logging and errors
"""
