"""
ClassChat - classroom forums with access-code enrollment and real-time updates
"""
__version__ = "1.0.0"
