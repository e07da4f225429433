# Relative reference scanning
"""
Finds relative asset references by markup construct.
"""
