"""
Services package

- authorization_service.py: role lookup per user
- premium_service.py: premium status provider
- access_gate.py: collection access resolution
"""
