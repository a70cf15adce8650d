"""
policygate - Command Line Interface
"""
