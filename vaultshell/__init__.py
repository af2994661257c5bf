"""
VaultShell Password Manager
Copyright (c) 2025

Desktop shell that supervises the local vault backend and walks the user
through first-run master password setup.

LEGAL NOTICE:
This tool is for personal use only. It must operate only on the device where
it is installed and only with the explicit consent of the device owner.
"""
