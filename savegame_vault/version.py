"""Savegame Vault Meta information.
   Savegame Vault keeps a single application save state on local disk,
   encrypted, authenticated and replaced atomically.
"""
__title__ = 'savegame_vault'
__description__ = (
   'Savegame Vault keeps an encrypted, tamper-evident save state '
   'on local disk with atomic replacement and debounced autosave.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2026 Savegame Vault Authors'
__author__ = 'Savegame Vault Authors'
__author_email__ = 'maintainers@savegame-vault.invalid'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/savegame-vault/savegame-vault'
