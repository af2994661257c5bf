"""
Reference backend collaborator for VaultShell.

Implements the local HTTP contract the desktop shell talks to.
"""
