"""
Utility modules for the CSR approver.
"""
