"""
Pure reservation rules: interval algebra, admission policy, lifecycle.
Nothing in this package touches storage or the web framework.
"""
