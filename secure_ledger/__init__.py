"""
Secure Ledger

Money transfers protected by RSA on the wire and AES-256-GCM at rest,
recorded exactly once as balanced double-entry ledger pairs.
"""

__version__ = "1.0.0"
