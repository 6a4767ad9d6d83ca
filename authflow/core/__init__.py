"""
Configuration, security primitives, database handle and middleware.
"""
