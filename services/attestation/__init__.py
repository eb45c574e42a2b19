"""
Attestation Service
===================

HTTP surface over the credit attestation core: proof generation and
verification, identity binding, score updates, loan hooks and profile
queries.
"""
