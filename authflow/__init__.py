"""
authflow: signup, signin and email verification service.
"""
__version__ = "0.1.0"
