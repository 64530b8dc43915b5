"""Keychain Vault Meta information.
   Keychain Vault keeps a password-protected map of secrets sealed with
   authenticated encryption.
"""
__title__ = 'keychain_vault'
__description__ = (
   'Keychain Vault keeps a password-protected map of secrets '
   'sealed with authenticated encryption.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2026 Keychain Vault contributors'
__author__ = 'Keychain Vault contributors'
__license__ = 'Apache-2.0'
