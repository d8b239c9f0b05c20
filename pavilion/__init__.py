"""
Pavilion - cricket club scoring and tournament scheduling backend
"""
__version__ = "0.1.0"
